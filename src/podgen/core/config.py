"""
Configuration Management for podgen.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration sections
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (PODGEN_SYNTHESIS_PROVIDER, PODGEN_CACHE_DIR, ...)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Credentials are never read from YAML. Providers and collaborators pick
them up from the environment (FAL_KEY, REPLICATE_API_TOKEN,
OPENAI_API_KEY, DATAFORSEO_LOGIN, DATAFORSEO_PASSWORD).

Example settings.yaml:
    synthesis:
      provider: dia-fal
      max_parallel: 1

    cache:
      base_dir: .cache
      ttl_seconds: 3600

    chunking:
      max_chars: 9000
      target_seconds: 45

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict
import os
import yaml


class ConfigValidationError(Exception):
    """Raised when a configuration value is out of bounds or of the wrong type."""
    pass


class Defaults:
    """
    Centralized default configuration values.

    Sections:
        - Cache: stage cache directory and entry lifetime
        - History: durable episode records
        - Chunking: provider request budgets
        - Enrichment: article fetching and summarization
        - Sources: news collection
        - Script: dialogue generation
        - Synthesis: provider selection
        - HTTP: shared client timeouts
        - Logging: log level
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Stage cache
    # ─────────────────────────────────────────────────────────────────────────
    CACHE_BASE_DIR = ".cache"
    CACHE_TTL_SECONDS = 3600            # one hour, measured from write time

    # ─────────────────────────────────────────────────────────────────────────
    # Episode history (no expiry)
    # ─────────────────────────────────────────────────────────────────────────
    HISTORY_BASE_DIR = ".episodes"
    HISTORY_LIST_LIMIT = 50

    # ─────────────────────────────────────────────────────────────────────────
    # Chunk planning
    # ─────────────────────────────────────────────────────────────────────────
    CHUNKING_MAX_CHARS = 9000           # provider hard limit is ~10k
    CHUNKING_TARGET_CHARS = 6500
    CHUNKING_MIN_CHARS = 2500
    CHUNKING_MAX_SECONDS = 60.0
    CHUNKING_TARGET_SECONDS = 45.0
    CHUNKING_MIN_SECONDS = 25.0
    CHUNKING_WORDS_PER_MINUTE = 150

    # ─────────────────────────────────────────────────────────────────────────
    # Enrichment
    # ─────────────────────────────────────────────────────────────────────────
    ENRICHMENT_BATCH_SIZE = 3
    ENRICHMENT_FETCH_TIMEOUT_S = 10.0
    ENRICHMENT_CONTENT_MAX_CHARS = 8000
    ENRICHMENT_MIN_CONTENT_CHARS = 200
    ENRICHMENT_MODEL = "gpt-5-nano"

    # ─────────────────────────────────────────────────────────────────────────
    # Source collection
    # ─────────────────────────────────────────────────────────────────────────
    SOURCES_MAX_INPUTS = 5
    SOURCES_RESULTS_PER_TOPIC = 3
    SOURCES_LANGUAGE_CODE = "en"
    SOURCES_LOCATION_CODE = 2840        # United States

    # ─────────────────────────────────────────────────────────────────────────
    # Script generation
    # ─────────────────────────────────────────────────────────────────────────
    SCRIPT_MODEL = "gpt-5.2-chat-latest"
    SCRIPT_MAX_COMPLETION_TOKENS = 8192
    SCRIPT_TURN_RANGE = "80-100"

    # ─────────────────────────────────────────────────────────────────────────
    # Synthesis
    # ─────────────────────────────────────────────────────────────────────────
    SYNTHESIS_PROVIDER = "dia-fal"
    SYNTHESIS_MAX_PARALLEL = 1
    SPEAKERS = ("alex", "jordan")

    # ─────────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────────
    HTTP_TIMEOUT_S = 120.0
    HTTP_POLL_INTERVAL_S = 2.0
    HTTP_MAX_WAIT_S = 600.0

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_LEVEL = 2


@dataclass
class CacheConfig:
    """Stage cache location and entry lifetime."""
    base_dir: str = Defaults.CACHE_BASE_DIR
    ttl_seconds: int = Defaults.CACHE_TTL_SECONDS


@dataclass
class HistoryConfig:
    """Durable episode records. Kept apart from the stage cache."""
    base_dir: str = Defaults.HISTORY_BASE_DIR
    list_limit: int = Defaults.HISTORY_LIST_LIMIT


@dataclass
class ChunkingConfig:
    """
    Chunk planning budgets.

    Characters are measured on the provider-formatted script; seconds are
    estimated from word count at ``words_per_minute``.
    """
    max_chars: int = Defaults.CHUNKING_MAX_CHARS
    target_chars: int = Defaults.CHUNKING_TARGET_CHARS
    min_chars: int = Defaults.CHUNKING_MIN_CHARS
    max_seconds: float = Defaults.CHUNKING_MAX_SECONDS
    target_seconds: float = Defaults.CHUNKING_TARGET_SECONDS
    min_seconds: float = Defaults.CHUNKING_MIN_SECONDS
    words_per_minute: int = Defaults.CHUNKING_WORDS_PER_MINUTE


@dataclass
class EnrichmentConfig:
    batch_size: int = Defaults.ENRICHMENT_BATCH_SIZE
    fetch_timeout_s: float = Defaults.ENRICHMENT_FETCH_TIMEOUT_S
    content_max_chars: int = Defaults.ENRICHMENT_CONTENT_MAX_CHARS
    min_content_chars: int = Defaults.ENRICHMENT_MIN_CONTENT_CHARS
    model: str = Defaults.ENRICHMENT_MODEL


@dataclass
class SourcesConfig:
    max_inputs: int = Defaults.SOURCES_MAX_INPUTS
    results_per_topic: int = Defaults.SOURCES_RESULTS_PER_TOPIC
    language_code: str = Defaults.SOURCES_LANGUAGE_CODE
    location_code: int = Defaults.SOURCES_LOCATION_CODE


@dataclass
class ScriptConfig:
    model: str = Defaults.SCRIPT_MODEL
    max_completion_tokens: int = Defaults.SCRIPT_MAX_COMPLETION_TOKENS
    turn_range: str = Defaults.SCRIPT_TURN_RANGE


@dataclass
class SynthesisConfig:
    """
    Synthesis provider selection.

    ``options`` holds the provider-specific section (model ids, voice
    presets) from ``synthesis.<provider id>`` in settings.yaml.
    """
    provider: str = Defaults.SYNTHESIS_PROVIDER
    max_parallel: int = Defaults.SYNTHESIS_MAX_PARALLEL
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HttpConfig:
    timeout_s: float = Defaults.HTTP_TIMEOUT_S
    poll_interval_s: float = Defaults.HTTP_POLL_INTERVAL_S
    max_wait_s: float = Defaults.HTTP_MAX_WAIT_S


@dataclass
class LoggingConfig:
    """
    Log levels:
        1 = MINIMAL, 2 = NORMAL (default), 3 = VERBOSE, 4 = DEBUG
    """
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class PipelineConfig:
    """
    Validated configuration for the episode pipeline.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = PipelineConfig.from_settings(settings)
        config.chunking.max_chars  # 9000
    """
    cache: CacheConfig = field(default_factory=CacheConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    script: ScriptConfig = field(default_factory=ScriptConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PipelineConfig":
        """
        Build a PipelineConfig from raw settings, applying defaults and
        validating every bound.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Cache / history
        # ─────────────────────────────────────────────────────────────────────
        cache_raw = raw.get("cache", {}) or {}
        cache = CacheConfig(
            base_dir=str(cache_raw.get("base_dir", Defaults.CACHE_BASE_DIR)),
            ttl_seconds=int(cache_raw.get("ttl_seconds", Defaults.CACHE_TTL_SECONDS)),
        )
        cls._validate_positive("cache.ttl_seconds", cache.ttl_seconds)

        history_raw = raw.get("history", {}) or {}
        history = HistoryConfig(
            base_dir=str(history_raw.get("base_dir", Defaults.HISTORY_BASE_DIR)),
            list_limit=int(history_raw.get("list_limit", Defaults.HISTORY_LIST_LIMIT)),
        )
        cls._validate_positive("history.list_limit", history.list_limit)

        # ─────────────────────────────────────────────────────────────────────
        # Chunking
        # ─────────────────────────────────────────────────────────────────────
        chunking_raw = raw.get("chunking", {}) or {}
        chunking = ChunkingConfig(
            max_chars=int(chunking_raw.get("max_chars", Defaults.CHUNKING_MAX_CHARS)),
            target_chars=int(chunking_raw.get("target_chars", Defaults.CHUNKING_TARGET_CHARS)),
            min_chars=int(chunking_raw.get("min_chars", Defaults.CHUNKING_MIN_CHARS)),
            max_seconds=float(chunking_raw.get("max_seconds", Defaults.CHUNKING_MAX_SECONDS)),
            target_seconds=float(chunking_raw.get("target_seconds", Defaults.CHUNKING_TARGET_SECONDS)),
            min_seconds=float(chunking_raw.get("min_seconds", Defaults.CHUNKING_MIN_SECONDS)),
            words_per_minute=int(chunking_raw.get("words_per_minute", Defaults.CHUNKING_WORDS_PER_MINUTE)),
        )
        cls._validate_positive("chunking.min_chars", chunking.min_chars)
        cls._validate_positive("chunking.min_seconds", chunking.min_seconds)
        cls._validate_positive("chunking.words_per_minute", chunking.words_per_minute)
        cls._validate_ordered("chunking.*_chars", chunking.min_chars, chunking.target_chars, chunking.max_chars)
        cls._validate_ordered("chunking.*_seconds", chunking.min_seconds, chunking.target_seconds, chunking.max_seconds)

        # ─────────────────────────────────────────────────────────────────────
        # Enrichment / sources / script
        # ─────────────────────────────────────────────────────────────────────
        enrichment_raw = raw.get("enrichment", {}) or {}
        enrichment = EnrichmentConfig(
            batch_size=int(enrichment_raw.get("batch_size", Defaults.ENRICHMENT_BATCH_SIZE)),
            fetch_timeout_s=float(enrichment_raw.get("fetch_timeout_s", Defaults.ENRICHMENT_FETCH_TIMEOUT_S)),
            content_max_chars=int(enrichment_raw.get("content_max_chars", Defaults.ENRICHMENT_CONTENT_MAX_CHARS)),
            min_content_chars=int(enrichment_raw.get("min_content_chars", Defaults.ENRICHMENT_MIN_CONTENT_CHARS)),
            model=str(enrichment_raw.get("model", Defaults.ENRICHMENT_MODEL)),
        )
        cls._validate_positive("enrichment.batch_size", enrichment.batch_size)
        cls._validate_positive("enrichment.fetch_timeout_s", enrichment.fetch_timeout_s)
        cls._validate_positive("enrichment.content_max_chars", enrichment.content_max_chars)
        cls._validate_non_negative("enrichment.min_content_chars", enrichment.min_content_chars)

        sources_raw = raw.get("sources", {}) or {}
        sources = SourcesConfig(
            max_inputs=int(sources_raw.get("max_inputs", Defaults.SOURCES_MAX_INPUTS)),
            results_per_topic=int(sources_raw.get("results_per_topic", Defaults.SOURCES_RESULTS_PER_TOPIC)),
            language_code=str(sources_raw.get("language_code", Defaults.SOURCES_LANGUAGE_CODE)),
            location_code=int(sources_raw.get("location_code", Defaults.SOURCES_LOCATION_CODE)),
        )
        cls._validate_positive("sources.max_inputs", sources.max_inputs)
        cls._validate_positive("sources.results_per_topic", sources.results_per_topic)

        script_raw = raw.get("script", {}) or {}
        script = ScriptConfig(
            model=str(script_raw.get("model", Defaults.SCRIPT_MODEL)),
            max_completion_tokens=int(script_raw.get("max_completion_tokens", Defaults.SCRIPT_MAX_COMPLETION_TOKENS)),
            turn_range=str(script_raw.get("turn_range", Defaults.SCRIPT_TURN_RANGE)),
        )
        cls._validate_positive("script.max_completion_tokens", script.max_completion_tokens)

        # ─────────────────────────────────────────────────────────────────────
        # Synthesis
        # ─────────────────────────────────────────────────────────────────────
        synthesis_raw = raw.get("synthesis", {}) or {}
        provider = str(synthesis_raw.get("provider", Defaults.SYNTHESIS_PROVIDER))
        options = synthesis_raw.get(provider, {}) or {}
        if not isinstance(options, dict):
            raise ConfigValidationError(f"synthesis.{provider} must be a mapping, got {type(options).__name__}")
        synthesis = SynthesisConfig(
            provider=provider,
            max_parallel=int(synthesis_raw.get("max_parallel", Defaults.SYNTHESIS_MAX_PARALLEL)),
            options=dict(options),
        )
        cls._validate_positive("synthesis.max_parallel", synthesis.max_parallel)

        http_raw = raw.get("http", {}) or {}
        http = HttpConfig(
            timeout_s=float(http_raw.get("timeout_s", Defaults.HTTP_TIMEOUT_S)),
            poll_interval_s=float(http_raw.get("poll_interval_s", Defaults.HTTP_POLL_INTERVAL_S)),
            max_wait_s=float(http_raw.get("max_wait_s", Defaults.HTTP_MAX_WAIT_S)),
        )
        cls._validate_positive("http.timeout_s", http.timeout_s)
        cls._validate_positive("http.poll_interval_s", http.poll_interval_s)
        cls._validate_positive("http.max_wait_s", http.max_wait_s)

        # ─────────────────────────────────────────────────────────────────────
        # Logging
        # ─────────────────────────────────────────────────────────────────────
        from podgen.core.logging.levels import coerce_level

        logging_raw = raw.get("logging", {}) or {}
        logging_cfg = LoggingConfig(level=int(coerce_level(logging_raw.get("level", Defaults.LOGGING_LEVEL))))
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            cache=cache,
            history=history,
            chunking=chunking,
            enrichment=enrichment,
            sources=sources,
            script=script,
            synthesis=synthesis,
            http=http,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")

    @staticmethod
    def _validate_ordered(name: str, low: int | float, mid: int | float, high: int | float) -> None:
        """min <= target <= max."""
        if not (low <= mid <= high):
            raise ConfigValidationError(f"{name} must satisfy min <= target <= max, got {low}/{mid}/{high}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    Use ``get_pipeline_config()`` for the validated, typed view.
    """
    raw: Dict[str, Any]

    @property
    def synthesis_provider(self) -> str:
        """Registered provider id (dia-fal, vibevoice-fal, ...)."""
        return str((self.raw.get("synthesis", {}) or {}).get("provider", Defaults.SYNTHESIS_PROVIDER))

    @property
    def cache_dir(self) -> str:
        return str((self.raw.get("cache", {}) or {}).get("base_dir", Defaults.CACHE_BASE_DIR))

    @property
    def default_speakers(self) -> list[str]:
        """Roster used when a request does not name its speakers."""
        speakers = (self.raw.get("podcast", {}) or {}).get("speakers")
        if not speakers:
            return list(Defaults.SPEAKERS)
        return [str(s) for s in speakers]

    def get_pipeline_config(self) -> PipelineConfig:
        """
        Raises:
            ConfigValidationError: If validation fails.
        """
        return PipelineConfig.from_settings(self)


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML configuration file.

    Environment variable overrides:
        - PODGEN_SYNTHESIS_PROVIDER: Override synthesis.provider
        - PODGEN_CACHE_DIR: Override cache.base_dir

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    provider = os.getenv("PODGEN_SYNTHESIS_PROVIDER")
    if provider:
        raw.setdefault("synthesis", {})["provider"] = provider
    cache_dir = os.getenv("PODGEN_CACHE_DIR")
    if cache_dir:
        raw.setdefault("cache", {})["base_dir"] = cache_dir

    return Settings(raw=raw)
