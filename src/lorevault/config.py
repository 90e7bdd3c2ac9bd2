"""
Configuration model for lorevault.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("lorevault")

ENV_PREFIX = "LOREVAULT_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LorevaultConfig(BaseModel):
    """Runtime settings for the engine and its MCP server."""

    storage_dir: Path = Field(
        default=Path("lorevault_data"),
        description="Root directory for character collections and the library",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    library_id_length: int = Field(
        default=12,
        ge=8,
        le=32,
        description="Length of generated library item ids",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{v}'")
        return level

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "LorevaultConfig":
        """Build a config from ``LOREVAULT_*`` environment variables.

        Values from a ``.env`` file are loaded first; variables already set in
        the environment take precedence.
        """
        if not load_dotenv(env_file):
            logger.debug(".env file not found, using process environment only")

        values: dict[str, str] = {}
        for field_name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{field_name.upper()}")
            if raw:
                values[field_name] = raw
        return cls.model_validate(values)
