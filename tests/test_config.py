"""Tests for engine configuration."""

import pytest

from typed_spi.config import EngineConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("TYPED_SPI_DATABASE", "TYPED_SPI_READ_ONLY", "TYPED_SPI_SETTINGS"):
        monkeypatch.delenv(name, raising=False)


class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.database == ":memory:"
        assert config.read_only is False
        assert config.settings == {}

    def test_from_empty_env(self):
        assert EngineConfig.from_env() == EngineConfig()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TYPED_SPI_DATABASE", "/tmp/x.duckdb")
        monkeypatch.setenv("TYPED_SPI_READ_ONLY", "Yes")
        monkeypatch.setenv("TYPED_SPI_SETTINGS", '{"threads": "1"}')
        config = EngineConfig.from_env()
        assert config.database == "/tmp/x.duckdb"
        assert config.read_only is True
        assert config.settings == {"threads": "1"}

    def test_keywords_win_over_env(self, monkeypatch):
        monkeypatch.setenv("TYPED_SPI_DATABASE", "spi.duckdb")
        monkeypatch.setenv("TYPED_SPI_READ_ONLY", "0")
        config = EngineConfig(database=":memory:")
        assert config.database == ":memory:"
        assert config.read_only is False

    def test_bad_bool(self, monkeypatch):
        """An unparseable flag is rejected rather than read as false."""
        monkeypatch.setenv("TYPED_SPI_READ_ONLY", "maybe")
        with pytest.raises(ValueError, match="read_only"):
            EngineConfig.from_env()
