"""Store configuration, read from the environment (and an optional .env file)."""
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

LOGGER_NAMES = ("ModelStore", "SchemaCompiler", "IdentityRegistry", "ModelCache", "FieldSchema")


class StoreSettings(BaseModel):
    """Settings of a Store."""
    log_level: str = Field(default="WARNING", description="Level applied to the store loggers.")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "StoreSettings":
        """Build settings from MODELSTORE_* environment variables."""
        load_dotenv(dotenv_path)
        return cls(log_level=os.getenv("MODELSTORE_LOG_LEVEL", "WARNING"))

    def apply_logging(self) -> None:
        for name in LOGGER_NAMES:
            logging.getLogger(name).setLevel(self.log_level)
