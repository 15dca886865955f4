"""Typer CLI (presentation layer): commands, Rich tables, exit codes."""
