"""Configuration management for videominer."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable overrides.

    All settings can be overridden via environment variables
    prefixed with VIDEOMINER_ (e.g. VIDEOMINER_DATA_DIR, VIDEOMINER_PORT).
    """

    model_config = {"env_prefix": "VIDEOMINER_"}

    # Storage
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".videominer",
        description="Root directory for all videominer data",
    )

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"

    # Listing
    default_page_size: int = Field(default=10, ge=1)

    @property
    def db_path(self) -> Path:
        """SQLite database path."""
        return self.data_dir / "videominer.db"

    def ensure_dirs(self) -> None:
        """Create the data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton — import this throughout the app
settings = Settings()
