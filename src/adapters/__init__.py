"""Infrastructure adapters: Azure CLI client and JSON output files."""
