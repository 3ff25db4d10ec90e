"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (PITCHPARTY__CACHE__SIZE=40)
  2. pitchparty.yaml        (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional: every field except the Gemini API key has a
usable default. Without a Giphy key the placeholder GIF is served.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

PLACEHOLDER_GIF_URL = "https://media.giphy.com/media/3o7abB06u9bNzA8lu8/giphy.gif"


def _find_config_file() -> str | None:
    """Return the path of the first pitchparty.yaml found, or None."""
    candidates = [
        Path("pitchparty.yaml"),
        Path(platformdirs.user_config_dir("pitchparty")) / "pitchparty.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class CacheSettings(BaseModel):
    size: int = Field(default=20, gt=0)
    preload_enabled: bool = True
    # Occupancy the preloader fills to, as a fraction of size
    fill_fraction: float = Field(default=0.8, gt=0.0, le=1.0)
    maintenance_interval_seconds: float = 30.0
    failure_cooldown_seconds: float = 5.0
    # How long a request waits for the initial load before generating itself
    pop_wait_seconds: float = 2.0


class RetrySettings(BaseModel):
    max_retries: int = Field(default=5, ge=0)
    base_delay_seconds: float = 1.0


class GeminiSettings(BaseModel):
    api_key: str = ""
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    text_model: str = "gemini-1.5-pro-latest"
    image_model: str = "imagen-3.0-generate-002"
    temperature: float = 0.9
    image_prompt_max_tokens: int = 300
    timeout_seconds: float = 60.0


class GiphySettings(BaseModel):
    api_key: str = ""
    search_url: str = "https://api.giphy.com/v1/gifs/search"
    query: str = "clapping"
    limit: int = 50
    rating: str = "g"
    pool_ttl_seconds: float = 3600.0
    dedup_draw_attempts: int = Field(default=10, ge=1)
    placeholder_url: str = PLACEHOLDER_GIF_URL


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: PITCHPARTY__GIPHY__API_KEY=...
        env_prefix="PITCHPARTY__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    cache: CacheSettings = CacheSettings()
    retry: RetrySettings = RetrySettings()
    gemini: GeminiSettings = GeminiSettings()
    giphy: GiphySettings = GiphySettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
