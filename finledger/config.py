"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./finledger.db"

    # Service
    service_name: str = "finledger"
    log_level: str = "INFO"

    # Recurrence
    horizon_days: int = 90
    occurrence_hard_cap: int = 36  # Max occurrences produced by a single materialization pass
    initial_batch_size: int = 12

    # Scheduler
    sweep_interval_seconds: int = 86_400  # Once per day
    sweep_poll_seconds: float = 60.0
    sweep_workers: int = 1  # 1 = rules swept sequentially


settings = Settings()
