"""Domain models and error taxonomy.

Pure data structures (Pydantic v2) and exceptions. The domain knows nothing
about subprocesses, the CLI, or Rich.
"""
