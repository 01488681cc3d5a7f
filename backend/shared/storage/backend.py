"""Storage backend protocol for whole-game document persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from shared.dal.models import Game, GameSummary
    from shared.storage.result import StorageResult


class StorageBackend(Protocol):
    """Key-value persistence of game documents addressed by game id.

    Every operation reports failure through its result instead of raising,
    and a failed operation leaves the stored state unchanged.
    """

    async def save_game(self, game: Game) -> StorageResult[bool]: ...

    async def load_game(self, game_id: str) -> StorageResult[Game]: ...

    async def list_games(self) -> StorageResult[list[GameSummary]]: ...

    async def delete_game(self, game_id: str) -> StorageResult[bool]: ...

    async def test_connection(self) -> StorageResult[bool]: ...

    async def export_data(self) -> StorageResult[str]: ...

    async def import_data(self, payload: str) -> StorageResult[bool]: ...

    async def clear_all_data(self) -> StorageResult[bool]: ...
