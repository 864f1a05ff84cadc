"""
Configuration settings for the annotation overlay service.

Reads overrides from the environment (prefix ``ANNOTATOR_``) or a project
``.env`` file and provides typed settings.
"""

from pathlib import Path
from typing import Literal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Resolve paths
PACKAGE_DIR = Path(__file__).parent
PROJECT_ROOT = PACKAGE_DIR.parent
ENV_FILE = PROJECT_ROOT / ".env"


# PDF points per canvas/user unit
UNIT_SCALES = {
    "pt": 1.0,
    "mm": 72.0 / 25.4,
    "cm": 72.0 / 2.54,
    "in": 72.0,
}


class Settings(BaseSettings):
    """Application settings loaded from the environment or .env file."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        env_prefix="ANNOTATOR_",
        extra="ignore",
    )

    # Application settings
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Drawing settings
    unit: Literal["pt", "mm", "cm", "in"] = Field(
        default="mm",
        description="User unit of canvas coordinates (the original engine used millimetres)"
    )
    brush_size: float = Field(default=0.50, description="Line width of freehand paths, in user units")
    font_name: str = Field(default="Times", description="Font family used for text objects")
    font_ratio: float = Field(
        default=1.6,
        description="Canvas font size is divided by this ratio to get the PDF font size"
    )
    highlight_opacity: float = Field(default=0.30, description="Fill opacity of highlight rectangles")
    full_opacity: float = Field(default=1.0, description="Opacity restored after a highlight is drawn")
    template_offset: float = Field(
        default=1.0,
        description="Offset in user units at which the source page is stamped, on both axes"
    )
    adjust_page_size: bool = Field(
        default=False,
        description="Rescale the source page to the destination page when stamping"
    )

    # Input handling
    max_pdf_version: str = Field(
        default="1.4",
        description="Highest PDF header version accepted without pre-conversion"
    )
    unknown_object_policy: Literal["skip", "warn", "error"] = Field(
        default="warn",
        description="What to do with canvas objects of an unrecognised type"
    )

    # Storage settings
    storage_dir: Path = Field(default=PROJECT_ROOT / "storage", description="Root directory of the local file store")
    tmp_dir: Path = Field(default=PROJECT_ROOT / "tmp", description="Directory for uploaded source files")
    max_file_bytes: int = Field(
        default=50 * 1024 * 1024,
        description="Maximum size in bytes of a stored annotated file"
    )

    @property
    def unit_scale(self) -> float:
        """PDF points per user unit."""
        return UNIT_SCALES[self.unit]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience accessors
settings = get_settings()
