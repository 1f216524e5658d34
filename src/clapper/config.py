"""Clapper configuration system — typed settings loaded from .env."""

import logging
from typing import Any

from pydantic import BaseModel, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from clapper.errors import ConfigError

logger = logging.getLogger(__name__)

_config_instance: "ClapperConfig | None" = None

# camelCase option names accepted in partial updates
_ALIASES = {
    "rhythmTolerance": "rhythm_tolerance",
    "powerThreshold": "power_threshold",
    "engineInput": "engine_input",
}


class ClapSettings(BaseModel):
    """Double-clap timing and power parameters."""

    spacing: float = 0.3  # target gap between the two claps (s)
    rhythm_tolerance: float = 0.1  # symmetric half-width of the window (s)
    power_threshold: float = 0.15  # minimum RMS difference of a clap


class ClapperConfig(BaseSettings):
    """All clapper settings, loaded from environment variables with CLAPPER_ prefix."""

    debug: bool = False

    clap: ClapSettings = ClapSettings()

    # Engine
    engine_input: str = "-iadc"
    engine_hardware_buffer: int = 2048
    engine_software_buffer: int = 512

    # System
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CLAPPER_",
        env_nested_delimiter="__",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def _normalize(partial: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase keys to field names, recursing into nested dicts."""
    normalized = {}
    for key, value in partial.items():
        if isinstance(value, BaseModel):
            value = value.model_dump()
        if isinstance(value, dict):
            value = _normalize(value)
        normalized[_ALIASES.get(key, key)] = value
    return normalized


def merge_config(
    config: ClapperConfig,
    partial: "dict[str, Any] | ClapperConfig | None",
) -> ClapperConfig:
    """Merge a partial update over *config* and return a new validated snapshot.

    Nested ``clap`` keys are merged individually, so ``{"clap": {"spacing": 0.5}}``
    keeps the current tolerance and threshold.

    Raises:
        ConfigError: If the merged values fail validation.
    """
    if not partial:
        return config
    if isinstance(partial, ClapperConfig):
        return partial

    data = config.model_dump()
    for key, value in _normalize(partial).items():
        if key == "clap" and isinstance(value, dict):
            data["clap"].update(value)
        else:
            data[key] = value

    try:
        return ClapperConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def get_config() -> ClapperConfig:
    """Get the singleton ClapperConfig instance.

    Returns:
        The shared ClapperConfig loaded from environment.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = ClapperConfig()
    return _config_instance
