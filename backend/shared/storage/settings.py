"""Storage backend selection via environment variables."""

from typing import Self

from pydantic import model_validator
from pydantic_settings import BaseSettings


class StorageSettings(BaseSettings):
    model_config = {"env_prefix": "STORAGE_"}

    # True: single JSON file on local disk. False: Google Cloud Storage bucket.
    use_local_storage: bool = True

    local_path: str = "backend/data/games.json"

    # Required when use_local_storage is False
    bucket_name: str = ""
    project_id: str = ""
    # Service account key file; application default credentials when unset
    key_filename: str | None = None

    @model_validator(mode="after")
    def _validate_remote_fields(self) -> Self:
        if not self.use_local_storage:
            missing = [name for name in ("bucket_name", "project_id") if not getattr(self, name)]
            if missing:
                raise ValueError(f"Remote storage requires {', '.join(missing)}")
        return self
