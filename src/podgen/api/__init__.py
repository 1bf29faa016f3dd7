"""
podgen HTTP API (FastAPI).

    routes.py        - episode and health endpoints
    schemas.py       - pydantic request/response models
    dependencies.py  - settings and pipeline providers
"""
