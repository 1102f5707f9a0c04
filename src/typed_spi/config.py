"""Engine configuration.

Environment variables:
    TYPED_SPI_DATABASE: Database file path, or ":memory:"
    TYPED_SPI_READ_ONLY: Open the database file read-only
    TYPED_SPI_SETTINGS: JSON object of engine settings
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseSettings):
    """Settings used to open the in-process engine.

    Keyword arguments win over the environment, which wins over the defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="TYPED_SPI_",
        case_sensitive=False,
        extra="ignore",
    )

    database: str = Field(
        default=":memory:",
        description="Database file path, or :memory: for an in-memory database",
    )
    read_only: bool = Field(
        default=False,
        description="Open the database file read-only",
    )
    settings: dict[str, str] = Field(
        default_factory=dict,
        description='Engine settings passed through verbatim, e.g. {"threads": "1"}',
    )

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Build a config from environment variables, defaulting anything unset."""
        return cls()
