"""
Core Infrastructure for podgen.

This package provides foundational components:
    - config.py: Configuration loading and validation
    - errors.py: Error codes and the exception hierarchy
    - models.py: Shared value types (sources, turns, audio)
    - logging/: Structured logging with numeric levels
"""
