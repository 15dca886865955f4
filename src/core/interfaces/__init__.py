"""Core contracts.

Protocols implemented by concrete adapters, so the orchestrator depends on
abstractions and tests can swap in fakes.
"""
