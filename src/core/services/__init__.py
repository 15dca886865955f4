"""Workflow services (orchestration and verification)."""
