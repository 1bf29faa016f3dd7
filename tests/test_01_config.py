"""
Tests for configuration validation and defaults.

Tests cover:
- PipelineConfig.from_settings() - all sections
- Defaults class values
- ConfigValidationError on invalid values
- Provider options picked from the selected provider's section
- Environment overrides in load_settings()
- Settings properties
"""

import pytest

from podgen.core.config import (
    ChunkingConfig,
    ConfigValidationError,
    Defaults,
    PipelineConfig,
    Settings,
    load_settings,
)


class TestDefaults:
    """Tests for Defaults class values."""

    def test_cache_defaults(self):
        """Stage cache entries live one hour."""
        assert Defaults.CACHE_TTL_SECONDS == 3600

    def test_chunking_defaults(self):
        """Chunk budgets are ordered min <= target <= max."""
        assert Defaults.CHUNKING_MIN_CHARS <= Defaults.CHUNKING_TARGET_CHARS <= Defaults.CHUNKING_MAX_CHARS
        assert Defaults.CHUNKING_MIN_SECONDS <= Defaults.CHUNKING_TARGET_SECONDS <= Defaults.CHUNKING_MAX_SECONDS
        assert Defaults.CHUNKING_MAX_SECONDS == 60.0
        assert Defaults.CHUNKING_WORDS_PER_MINUTE == 150

    def test_synthesis_defaults(self):
        assert Defaults.SYNTHESIS_PROVIDER == "dia-fal"
        assert Defaults.SYNTHESIS_MAX_PARALLEL == 1
        assert Defaults.SPEAKERS == ("alex", "jordan")


class TestPipelineConfig:
    """Tests for PipelineConfig.from_settings()."""

    def test_empty_settings_use_defaults(self):
        """Missing sections should fall back to defaults."""
        config = PipelineConfig.from_settings(Settings(raw={}))
        assert config.cache.ttl_seconds == Defaults.CACHE_TTL_SECONDS
        assert config.chunking == ChunkingConfig()
        assert config.synthesis.provider == "dia-fal"
        assert config.synthesis.options == {}
        assert config.logging.level == 2

    def test_provider_options_from_section(self):
        """options should come from synthesis.<provider>."""
        raw = {
            "synthesis": {
                "provider": "vibevoice-fal",
                "vibevoice-fal": {"cfg_scale": 1.5, "presets": {"alex": "Frank [EN]"}},
                "dia-fal": {"model": "ignored"},
            }
        }
        config = PipelineConfig.from_settings(Settings(raw=raw))
        assert config.synthesis.provider == "vibevoice-fal"
        assert config.synthesis.options["cfg_scale"] == 1.5
        assert "model" not in config.synthesis.options

    def test_provider_options_must_be_mapping(self):
        raw = {"synthesis": {"provider": "tone", "tone": ["not", "a", "mapping"]}}
        with pytest.raises(ConfigValidationError, match="synthesis.tone"):
            PipelineConfig.from_settings(Settings(raw=raw))

    def test_negative_ttl_rejected(self):
        with pytest.raises(ConfigValidationError, match="cache.ttl_seconds"):
            PipelineConfig.from_settings(Settings(raw={"cache": {"ttl_seconds": -1}}))

    def test_unordered_chunk_budgets_rejected(self):
        """target above max should fail validation."""
        raw = {"chunking": {"max_seconds": 30, "target_seconds": 45, "min_seconds": 25}}
        with pytest.raises(ConfigValidationError, match="min <= target <= max"):
            PipelineConfig.from_settings(Settings(raw=raw))

    def test_zero_parallel_rejected(self):
        with pytest.raises(ConfigValidationError, match="synthesis.max_parallel"):
            PipelineConfig.from_settings(Settings(raw={"synthesis": {"max_parallel": 0}}))

    def test_string_log_level_coerced(self):
        """'VERBOSE' should be stored as 3."""
        config = PipelineConfig.from_settings(Settings(raw={"logging": {"level": "VERBOSE"}}))
        assert config.logging.level == 3


class TestSettings:
    """Tests for Settings properties and load_settings()."""

    def test_default_speakers(self):
        assert Settings(raw={}).default_speakers == ["alex", "jordan"]
        raw = {"podcast": {"speakers": ["casey"]}}
        assert Settings(raw=raw).default_speakers == ["casey"]

    def test_load_settings_from_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("synthesis:\n  provider: tone\ncache:\n  base_dir: /tmp/x\n", encoding="utf-8")
        settings = load_settings(str(path))
        assert settings.synthesis_provider == "tone"
        assert settings.cache_dir == "/tmp/x"

    def test_env_overrides(self, tmp_path, monkeypatch):
        """PODGEN_* variables beat the YAML file."""
        path = tmp_path / "settings.yaml"
        path.write_text("synthesis:\n  provider: dia-fal\n", encoding="utf-8")
        monkeypatch.setenv("PODGEN_SYNTHESIS_PROVIDER", "vibevoice-replicate")
        monkeypatch.setenv("PODGEN_CACHE_DIR", str(tmp_path / "cache"))

        settings = load_settings(str(path))
        assert settings.synthesis_provider == "vibevoice-replicate"
        assert settings.cache_dir == str(tmp_path / "cache")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(str(tmp_path / "nope.yaml"))

    def test_shipped_settings_validate(self):
        """config/settings.yaml should load and validate."""
        config = load_settings("config/settings.yaml").get_pipeline_config()
        assert config.chunking.max_chars == 9000
