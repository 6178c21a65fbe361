from pathlib import Path

from pydantic_settings import BaseSettings

# Application version - single source of truth
APP_VERSION = "0.3.0"

# Base directory for path calculations
_base_dir = Path(__file__).resolve().parent.parent.parent.parent


class Settings(BaseSettings):
    app_name: str = "PrintFleet"
    debug: bool = False  # Default to production mode

    # Paths
    base_dir: Path = _base_dir
    log_dir: Path = base_dir / "logs"
    database_url: str = f"sqlite+aiosqlite:///{_base_dir / 'printfleet.db'}"

    # Logging
    log_level: str = "INFO"  # Override with LOG_LEVEL env var or DEBUG=true
    log_to_file: bool = True  # Set to false to disable file logging

    # API
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = ["http://localhost:5173"]

    # Maintenance scheduling
    default_maintenance_interval_days: int = 30  # nextMaintenance for new printers
    upcoming_maintenance_days: int = 7  # Window for the "upcoming" view

    # UDP printer discovery
    discovery_port: int = 8888
    discovery_timeout_seconds: float = 5.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

if settings.log_to_file:
    settings.log_dir.mkdir(exist_ok=True)
