"""Engine settings loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "DEPRECIATION_", "env_file": ".env", "env_file_encoding": "utf-8"}

    # Useful life assumed when a monthly asset has none
    default_monthly_useful_life: int = 12

    # Schedules closer than this are treated as unchanged
    schedule_tolerance: float = 0.001

    # Upper bound on resolve/regenerate passes per host change
    max_resolution_passes: int = 8

    log_level: str = "INFO"


settings = Settings()
