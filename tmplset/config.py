import codecs
import logging
import os
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tmplset.exceptions import ConfigurationException, ErrorCode
from tmplset.logging_config import get_logger, log_with_context, setup_logging

logger = get_logger(__name__)

DEFAULT_ROOT = "./templates"
DEFAULT_EXTENSION = ".html"
DEFAULT_POOL_SIZE = 1 << 6


class TemplateSettings(BaseSettings):
    """Template set settings with validation.

    Every field can be supplied through the environment with the
    ``TMPLSET_`` prefix (e.g. ``TMPLSET_RECOMPILE=true``) or a ``.env`` file.
    Instances are frozen: a template set never changes configuration
    after construction.
    """

    root: str = Field(default=DEFAULT_ROOT, min_length=1, description="Filesystem loader root directory")
    extension: str = Field(default=DEFAULT_EXTENSION, description="Extension appended to template names")
    recompile: bool = Field(default=False, description="Reload and reparse templates on every render")
    pool_size: int = Field(default=DEFAULT_POOL_SIZE, ge=1, description="Buffer pool capacity")
    encoding: str = Field(default="utf-8", description="Template source and output encoding")
    autoescape: bool = Field(default=True, description="HTML-escape expression output")
    strict_undefined: bool = Field(default=True, description="Fail renders that reference missing fields")
    cache_sources: bool = Field(default=True, description="Cache loaded sources by template name")
    log_level: str = Field(default="INFO", description="Level passed to setup_logging")
    log_file: str | None = Field(default=None, description="Rotating JSON log file, console only when unset")

    model_config = SettingsConfigDict(
        env_prefix="TMPLSET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        validate_default=True,
    )

    @field_validator("root", "log_file", mode="before")
    @classmethod
    def coerce_path(cls, v: Any) -> Any:
        """Accept pathlib.Path and other path-like values for path fields."""
        if isinstance(v, os.PathLike):
            return os.fspath(v)
        return v

    @field_validator("root", mode="after")
    @classmethod
    def validate_root(cls, v: str) -> str:
        """Ensure root is not empty or whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("root cannot be empty")
        return v

    @field_validator("extension", mode="after")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        """Ensure a non-empty extension starts with a dot."""
        v = v.strip()
        if v and not v.startswith("."):
            raise ValueError(f"extension must start with '.': {v!r}")
        return v

    @field_validator("encoding", mode="after")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Ensure encoding names a known codec."""
        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"unknown encoding: {v}") from e
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"invalid log level: {v}")
        return v

    def with_overrides(self, **overrides: Any) -> "TemplateSettings":
        """Return a validated copy with the given fields replaced.

        Raises:
            ConfigurationException: If a field is unknown or fails validation
        """
        if not overrides:
            return self
        unknown = sorted(set(overrides) - set(type(self).model_fields))
        if unknown:
            raise ConfigurationException(
                f"Unknown template settings: {', '.join(unknown)}",
                code=ErrorCode.CONFIG_INVALID,
                details={"fields": unknown},
            )
        try:
            return type(self).model_validate({**self.model_dump(), **overrides})
        except ValidationError as e:
            log_with_context(
                logger,
                "error",
                "Invalid template settings override",
                error=str(e),
                event_type="config_invalid",
            )
            raise ConfigurationException(
                f"Invalid template settings: {e}",
                code=ErrorCode.CONFIG_INVALID,
                details={"fields": sorted(overrides)},
            ) from e


# Singleton settings instance (cached for performance)
_settings_instance: TemplateSettings | None = None


def get_settings() -> TemplateSettings:
    """Get singleton TemplateSettings instance.

    This function creates a singleton to avoid re-reading the environment
    and .env file every time a template set is created.

    Returns:
        Cached TemplateSettings instance
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = TemplateSettings()
    return _settings_instance


def configure_logging(settings: TemplateSettings | None = None) -> logging.Logger:
    """Install structured logging using the level and file from settings.

    Args:
        settings: Settings to read (defaults to the get_settings() singleton)

    Returns:
        Configured root logger instance
    """
    if settings is None:
        settings = get_settings()
    return setup_logging(settings.log_level, log_file=settings.log_file)
