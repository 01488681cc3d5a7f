"""Pluggable persistence of game documents."""

from shared.storage.backend import StorageBackend
from shared.storage.gcs import GoogleCloudStorageBackend
from shared.storage.local import LocalStorageBackend
from shared.storage.memory import MemoryStorageBackend
from shared.storage.result import GAME_NOT_FOUND, StorageResult
from shared.storage.settings import StorageSettings

__all__ = [
    "GAME_NOT_FOUND",
    "GoogleCloudStorageBackend",
    "LocalStorageBackend",
    "MemoryStorageBackend",
    "StorageBackend",
    "StorageResult",
    "StorageSettings",
    "create_storage_backend",
]


def create_storage_backend(settings: StorageSettings) -> StorageBackend:
    """Build the backend selected by ``settings.use_local_storage``."""
    if settings.use_local_storage:
        return LocalStorageBackend(settings.local_path)
    return GoogleCloudStorageBackend(
        bucket_name=settings.bucket_name,
        project_id=settings.project_id,
        key_filename=settings.key_filename,
    )
