"""Central configuration using Pydantic BaseSettings."""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # Application
    app_name: str = "Smart Home Admin Console"
    debug: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Storage
    sqlite_db_path: str = Field(default="admin_console.db", alias="SQLITE_DB_PATH")

    # Simulations
    simulation_settle_seconds: float = 5.0  # in-progress -> completed
    transition_retry_attempts: int = 1
    auto_run_due_events: bool = False
    due_poll_interval_seconds: int = 30

    # Security
    sensitive_device_types: list[str] = ["camera", "lock"]

    # Activity log
    activity_log_limit: int = 50

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }


settings = Settings()
