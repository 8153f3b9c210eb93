"""Configuration management for the street view generator."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    """Application-level configuration."""

    # Directories
    data_dir: Path = Field(
        default=Path.home() / ".local" / "share" / "streetgen",
        description="Directory holding settings and imported fantasy maps",
    )
    pictures_dir: Path = Field(
        default=Path.home() / "Pictures" / "StreetGen",
        description="Gallery directory for saved generations",
    )

    # Model settings
    gemini_model: str = Field(
        default="gemini-3-pro-image-preview",
        description="Gemini model for image generation",
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Gemini REST API",
    )
    max_source_size: int = Field(
        default=2048,
        ge=256,
        le=4096,
        description="Longest side of the reference image sent to the model",
    )

    # Geocoding
    nominatim_url: str = Field(
        default="https://nominatim.openstreetmap.org/search",
        description="Place search endpoint",
    )
    user_agent: str = Field(default="StreetGen/0.1.0", description="User-Agent for place search")

    @classmethod
    def load(cls) -> "AppConfig":
        """Load configuration from environment and defaults."""
        fields = cls.model_fields
        return cls(
            data_dir=Path(os.environ.get("STREETGEN_DATA_DIR", str(fields["data_dir"].default))),
            pictures_dir=Path(os.environ.get("STREETGEN_PICTURES_DIR", str(fields["pictures_dir"].default))),
            gemini_model=os.environ.get("STREETGEN_GEMINI_MODEL", fields["gemini_model"].default),
            gemini_base_url=os.environ.get("STREETGEN_GEMINI_BASE_URL", fields["gemini_base_url"].default),
            nominatim_url=os.environ.get("STREETGEN_NOMINATIM_URL", fields["nominatim_url"].default),
        )

    @property
    def settings_file(self) -> Path:
        """YAML file backing the settings store."""
        return self.data_dir / "settings.yaml"

    @property
    def fantasy_maps_dir(self) -> Path:
        """Directory for imported fantasy map images."""
        return self.data_dir / "fantasy_maps"

    def ensure_directories(self) -> None:
        """Create necessary directories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.fantasy_maps_dir.mkdir(parents=True, exist_ok=True)
        self.pictures_dir.mkdir(parents=True, exist_ok=True)


# Global config instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get or create global configuration."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config
