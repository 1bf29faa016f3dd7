"""
FastAPI Dependency Providers.

    get_settings()  - settings, loaded once from PODGEN_SETTINGS or
                      config/settings.yaml
    get_pipeline()  - the process-wide PipelineOrchestrator

The orchestrator (and with it the CacheStore and the synthesis provider)
is constructed once per process and shared by all requests; it holds no
per-request state. Tests replace these through
``app.dependency_overrides``.
"""
from __future__ import annotations

import os
from functools import lru_cache

from podgen.core.config import Settings, load_settings
from podgen.services.pipeline import PipelineOrchestrator, build_pipeline


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings(os.getenv("PODGEN_SETTINGS", "config/settings.yaml"))


@lru_cache(maxsize=1)
def get_pipeline() -> PipelineOrchestrator:
    return build_pipeline(get_settings())
