"""Core: domain, contracts, configuration and the deployment pipeline."""
