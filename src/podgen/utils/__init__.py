"""
Utility Modules for podgen.

This package provides common utility functions used across the codebase:
    - audio.py: Audio format conversion (WAV encoding/decoding)
    - text.py: Word counts, duration estimates, HTML to text
    - timeit.py: Performance measurement utilities
"""
