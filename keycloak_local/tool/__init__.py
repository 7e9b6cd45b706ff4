"""Command line tool for deploying Keycloak to a local Minikube cluster."""
