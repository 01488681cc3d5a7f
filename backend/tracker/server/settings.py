"""Tracker server configuration via environment variables."""

from pydantic_settings import BaseSettings


class TrackerServerSettings(BaseSettings):
    model_config = {"env_prefix": "TRACKER_"}

    log_dir: str = "backend/logs/tracker"
    cors_origins: list[str] = []
    # Create the sample racing game on startup when storage is empty
    seed_sample_data: bool = False
