"""Outcome type returned by every storage backend operation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StorageResult[T]:
    """Success with a payload, or failure with a human-readable message.

    A failed result always means no state change occurred in the backend.
    """

    success: bool
    data: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: T) -> StorageResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> StorageResult[T]:
        return cls(success=False, error=error)


GAME_NOT_FOUND = "Game not found"
