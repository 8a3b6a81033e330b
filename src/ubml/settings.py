"""Shared settings loaded from environment / .env file."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the UBML validator.

    Values are read from ``UBML_``-prefixed environment variables and from a
    ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="UBML_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Directory holding ubml.schema.yaml; None uses the bundled schemas
    schemas_dir: Path | None = None

    # Validation
    strict: bool = False  # promote warnings to errors
    suppress_unused_warnings: bool = False
