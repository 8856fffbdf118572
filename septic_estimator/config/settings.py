"""Septic estimator configuration settings.

Loads configuration from environment variables with sensible defaults.
A `.env` file in the working directory is honoured for local development.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load .env file for local overrides (data paths, log format, etc.)
load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = PACKAGE_DIR / "data"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Cost data documents
    data_dir: Path = field(default_factory=lambda: Path(os.getenv("SEPTIC_DATA_DIR", str(DEFAULT_DATA_DIR))))
    systems_file: str = field(default_factory=lambda: os.getenv("SEPTIC_SYSTEMS_FILE", "septic_systems.json"))
    regional_file: str = field(default_factory=lambda: os.getenv("SEPTIC_REGIONAL_FILE", "regional_cost_data.json"))

    # Pricing
    rounding_increment: int = field(default_factory=lambda: int(os.getenv("ROUNDING_INCREMENT", "50")))
    default_area_type: str = field(default_factory=lambda: os.getenv("DEFAULT_AREA_TYPE", "suburban"))

    # Report branding
    company_name: str = field(default_factory=lambda: os.getenv("COMPANY_NAME", "SepticSense"))

    # Web server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "5000")))
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG"))
    cors_origins: List[str] = field(default_factory=lambda: _env_list("CORS_ORIGINS", "*"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: os.getenv("LOG_FORMAT", "console"))

    @property
    def systems_path(self) -> Path:
        """Full path to the installation/repair/maintenance cost document."""
        return Path(self.data_dir) / self.systems_file

    @property
    def regional_path(self) -> Path:
        """Full path to the regional adjustment document."""
        return Path(self.data_dir) / self.regional_file

    def validate(self) -> None:
        """Validate settings values.

        Raises:
            ValueError: If a setting is out of range.
        """
        if self.rounding_increment <= 0:
            raise ValueError("ROUNDING_INCREMENT must be a positive integer")
        if self.log_format not in ("console", "json"):
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")


# Singleton settings instance
settings = Settings()
