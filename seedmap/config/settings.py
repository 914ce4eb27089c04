"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Optional, List, Union
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json
from pathlib import Path


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="Seed Map Generator", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")
    base_url: Optional[str] = Field(
        default=None, description="Public base URL used to build image links"
    )

    # Storage Configuration
    storage_path: Path = Field(
        default=Path("./generated-maps"), description="Generated map directory"
    )
    log_path: Path = Field(default=Path("./logs"), description="Log file directory")

    # Job Configuration
    max_concurrent_jobs: int = Field(default=3, gt=0, description="Admission ceiling")
    default_world_size: int = Field(default=8, description="World size used when omitted")
    job_max_age_hours: int = Field(
        default=24, gt=0, description="Age after which finished jobs are cleaned up"
    )

    # Seed Map Site Configuration
    seedmap_base_url: str = Field(
        default="https://mcseedmap.net", description="Seed map website base URL"
    )
    game_version: str = Field(default="1.21.5-Java", description="Game version path segment")

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    viewport_width: int = Field(default=3840, description="Browser viewport width")
    viewport_height: int = Field(default=2160, description="Browser viewport height")
    navigation_timeout: int = Field(
        default=30000, description="Page navigation timeout in milliseconds"
    )
    ui_action_timeout: int = Field(
        default=5000, description="Timeout for optional UI clicks in milliseconds"
    )
    capture_timeout: int = Field(
        default=30000, description="Full-page screenshot timeout in milliseconds"
    )
    ui_short_delay: float = Field(default=1.0, ge=0, description="Pause after small UI changes")
    ui_panel_delay: float = Field(default=2.0, ge=0, description="Pause after opening panels")
    settle_delay: float = Field(
        default=5.0, ge=0, description="Wait before capture for the map to finish drawing"
    )

    # API Configuration
    enable_docs: bool = Field(default=True, description="Enable FastAPI docs endpoint")
    allowed_hosts: List[str] = Field(default=["*"], description="Allowed hosts for CORS")

    # Monitoring Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse allowed hosts from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string: ["*"] or ["host1", "host2"]
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Handle comma-separated string: "*" or "host1,host2"
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    @field_validator("storage_path", "log_path")
    @classmethod
    def create_directories(cls, v: Path) -> Path:
        """Ensure directories exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def public_base_url(self) -> str:
        """Base URL for links to generated images."""
        return (self.base_url or f"http://localhost:{self.port}").rstrip("/")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="SEEDMAP_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
