"""Configuration management for ThumbZone application.

Values come from environment variables first, then Streamlit secrets, then the
defaults below. Size ceilings live here so the upload dialog and the
size gate always agree on them.
"""

import os
from typing import Any

import streamlit as st

from .logging_config import get_logger

logger = get_logger(__name__)

# Firestore rejects documents above 1 MiB; the image field keeps a margin below it.
DEFAULT_MAX_IMAGE_DATA_BYTES = 1_048_487
DEFAULT_MAX_UPLOAD_SIZE_MB = 0.7


class Config:
    """Centralized configuration management using environment variables."""

    def __init__(self):
        self._cache: dict[str, Any] = {}

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get configuration value from environment variables or Streamlit secrets.

        Args:
            key: Configuration key
            default: Default value if not found
            cast_type: Type to cast the value to (str, int, bool, float)

        Returns:
            Configuration value cast to the specified type
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = os.getenv(key)

        if value is None:
            try:
                value = st.secrets.get(key)
            except Exception:  # nosec B110
                # No secrets.toml, or not running inside a Streamlit script
                pass

        if value is None:
            value = default

        if value is not None:
            try:
                if cast_type is bool:
                    if isinstance(value, str):
                        value = value.lower() in ("true", "1", "yes", "on")
                    else:
                        value = bool(value)
                elif cast_type is not str:
                    value = cast_type(value)
            except (ValueError, TypeError) as e:
                logger.warning("config_cast_failed", key=key, cast_type=cast_type.__name__, error=str(e))
                value = default

        self._cache[cache_key] = value
        return value

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """Get required configuration value.

        Raises:
            ValueError: If the required configuration is not found
        """
        value = self.get(key, cast_type=cast_type)
        if value is None:
            raise ValueError(f"Required configuration '{key}' not found")
        return value

    def is_development(self) -> bool:
        """Check if running in development mode."""
        environment = self.get("ENVIRONMENT", "development").lower()
        return environment in ["development", "dev", "local"]

    def clear_cache(self):
        """Clear configuration cache."""
        self._cache.clear()


_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_env(key: str, default: Any = None, cast_type: type = str) -> Any:
    """Get a configuration value with type casting."""
    return get_config().get(key, default, cast_type)


def get_required_env(key: str, cast_type: type = str) -> Any:
    """Get a required configuration value.

    Raises:
        ValueError: If the value is not configured anywhere
    """
    return get_config().get_required(key, cast_type)


def is_development() -> bool:
    """Check if running in development mode."""
    return get_config().is_development()


def get_store_backend() -> str:
    """Get the document store backend name ("duckdb" or "firestore")."""
    return str(get_env("THUMBNAIL_STORE_BACKEND", "duckdb")).lower()


def get_collection_name() -> str:
    """Get the name of the thumbnails collection."""
    return str(get_env("THUMBNAIL_COLLECTION", "thumbnails"))


def get_project_id() -> str | None:
    """Get Google Cloud project ID; None lets the Firestore client infer it."""
    return get_env("GOOGLE_CLOUD_PROJECT")


def get_firestore_database() -> str | None:
    """Get the Firestore database id, None for the default database."""
    return get_env("FIRESTORE_DATABASE")


def get_duckdb_path() -> str:
    """Get the path of the local DuckDB document store."""
    return str(get_env("DUCKDB_PATH", "/tmp/thumbzone/thumbnails.duckdb"))  # nosec B108


def get_max_upload_size_bytes() -> int:
    """Get the pre-encoding file size ceiling in bytes (0.7 MiB gives 734,003)."""
    size_mb = get_env("MAX_UPLOAD_SIZE_MB", DEFAULT_MAX_UPLOAD_SIZE_MB, float)
    return int(size_mb * 1024 * 1024)


def get_max_image_data_bytes() -> int:
    """Get the post-encoding ceiling for the stored image string in bytes."""
    return int(get_env("MAX_IMAGE_DATA_BYTES", DEFAULT_MAX_IMAGE_DATA_BYTES, int))


def get_openai_api_key() -> str:
    """Get the OpenAI API key used by the critique service."""
    return str(get_required_env("OPENAI_API_KEY"))


def get_critique_model() -> str:
    """Get the model name used for thumbnail critiques."""
    return str(get_env("CRITIQUE_MODEL", "gpt-4o-mini"))


def get_critique_prompt_variant() -> str:
    """Get the critique prompt variant ("general" or "localized")."""
    return str(get_env("CRITIQUE_PROMPT", "general")).lower()


def get_critique_language() -> str:
    """Get the output language for the localized critique prompt."""
    return str(get_env("CRITIQUE_LANGUAGE", "English"))


def get_log_level() -> str:
    """Get log level."""
    return str(get_env("LOG_LEVEL", "INFO"))
