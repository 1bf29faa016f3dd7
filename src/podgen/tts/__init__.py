"""
Synthesis Engine and Stage Cache.

This package provides the audio side of the pipeline:
    - provider.py: Provider base class, capabilities and factory
    - providers/: Provider implementations (Dia, VibeVoice, tone)
    - dialects.py: Script formatting per provider dialect
    - chunker.py: Dialogue splitting under provider limits
    - container.py: WAV parsing, concatenation and encoding
    - synthesis.py: Chunked synthesis with reference chaining
    - cache.py: Disk-based stage cache with TTL
"""
