"""Settings for ugcpipe: environment, .env and YAML sources over typed defaults."""

import os
from pathlib import Path
from typing import Any, ClassVar, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Reads the whole settings tree from a YAML file.

    The file defaults to ``config.yaml`` in the working directory and can be
    moved with ``UGCPIPE_CONFIG_FILE``. A missing file contributes nothing.
    """

    def __init__(self, settings_cls: type[BaseSettings], path: Optional[Path] = None):
        super().__init__(settings_cls)
        self.path = path or Path(os.environ.get("UGCPIPE_CONFIG_FILE", "config.yaml"))

    def get_field_value(self, field, field_name: str):
        # Whole-document source; fields are resolved in __call__
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        if not self.path.is_file():
            return {}
        loaded = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        return loaded if isinstance(loaded, dict) else {}


class GoogleConfig(BaseModel):
    """Google Gemini API configuration (Veo video + Gemini image models)."""

    api_key: str = ""
    video_model: str = "veo-3.1-generate-preview"
    image_model: str = "gemini-3-pro-image-preview"


class KlingConfig(BaseModel):
    """Kling API credentials for the premium video tiers."""

    access_key: str = ""
    secret_key: str = ""
    base_url: str = "https://api.kling.ai"
    request_timeout: float = 30.0


class ProvidersConfig(BaseModel):
    """Polling parameters shared by the video provider adapters."""

    poll_interval: float = 10.0
    poll_max: int = 60
    download_timeout: float = 120.0


class CreditsConfig(BaseModel):
    """Credit prices and per-tier allowances."""

    image_cost: int = 50
    video_scene_cost: dict[str, int] = Field(
        default_factory=lambda: {
            "default": 100,
            "premium-standard": 150,
            "premium-pro": 200,
        }
    )
    tier_allowance: dict[str, int] = Field(
        default_factory=lambda: {
            "trial": 500,
            "starter": 800,
            "pro": 2400,
            "agency": 6000,
        }
    )


class QuotaConfig(BaseModel):
    """Legacy free-tier daily quota defaults."""

    daily_video_quota: int = 50
    daily_image_quota: int = 200


class PipelineConfig(BaseModel):
    """Generation request limits."""

    max_scenes: int = 5


class StorageConfig(BaseModel):
    """Storage and database configuration."""

    database_url: str = "sqlite+aiosqlite:///ugcpipe.db"
    output_dir: Path = Path("tmp/outputs")
    public_base_url: str = "/files"
    bucket: str = "outputs"

    @field_validator("output_dir", mode="before")
    @classmethod
    def convert_output_dir_to_path(cls, v):
        """Convert string to Path object."""
        if isinstance(v, str):
            return Path(v)
        return v


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    # Absolute origin used to resolve relative asset URLs (e.g. /files/...)
    public_url: str = "http://127.0.0.1:8000"
    # Shared secret for the admin top-up endpoint; empty disables it
    admin_token: str = ""


class Settings(BaseSettings):
    """Top-level settings tree.

    Lookup order: UGCPIPE_* environment variables (`__` between nesting
    levels), then `.env`, then the YAML file, then the defaults below.
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="UGCPIPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    google: GoogleConfig = Field(default_factory=GoogleConfig)
    kling: KlingConfig = Field(default_factory=KlingConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    credits: CreditsConfig = Field(default_factory=CreditsConfig)
    quota: QuotaConfig = Field(default_factory=QuotaConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ):
        """Slot the YAML file between the dotenv source and init kwargs."""
        return (
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            init_settings,
        )


# Singleton instance
settings = Settings()
