"""In-process storage backend for tests and local development."""

import json

import structlog

from shared.dal.models import Game, GameSummary
from shared.storage.document import (
    DocumentError,
    decode_game_file,
    encode_game_file,
    parse_backup,
    sort_summaries,
    summarize,
)
from shared.storage.result import GAME_NOT_FOUND, StorageResult

logger = structlog.get_logger()


class MemoryStorageBackend:
    """Keeps serialized documents in a dict keyed by game id.

    Documents are stored as JSON strings so callers never share references
    with the stored state.
    """

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}

    async def save_game(self, game: Game) -> StorageResult[bool]:
        try:
            self._documents[game.id] = encode_game_file(game)
        except DocumentError as exc:
            logger.warning("failed to save game", game_id=game.id, error=str(exc))
            return StorageResult.fail(str(exc))
        return StorageResult.ok(True)

    async def load_game(self, game_id: str) -> StorageResult[Game]:
        raw = self._documents.get(game_id)
        if raw is None:
            return StorageResult.fail(GAME_NOT_FOUND)
        try:
            return StorageResult.ok(decode_game_file(raw))
        except DocumentError as exc:
            return StorageResult.fail(str(exc))

    async def list_games(self) -> StorageResult[list[GameSummary]]:
        summaries = []
        for game_id, raw in self._documents.items():
            try:
                summaries.append(summarize(decode_game_file(raw)))
            except DocumentError:
                logger.warning("skipping unreadable game document", game_id=game_id)
        return StorageResult.ok(sort_summaries(summaries))

    async def delete_game(self, game_id: str) -> StorageResult[bool]:
        if self._documents.pop(game_id, None) is None:
            return StorageResult.fail(GAME_NOT_FOUND)
        return StorageResult.ok(True)

    async def test_connection(self) -> StorageResult[bool]:
        return StorageResult.ok(True)

    async def export_data(self) -> StorageResult[str]:
        data = {game_id: json.loads(raw) for game_id, raw in self._documents.items()}
        return StorageResult.ok(json.dumps(data, indent=2))

    async def import_data(self, payload: str) -> StorageResult[bool]:
        try:
            games = parse_backup(payload)
            documents = {game_id: encode_game_file(game) for game_id, game in games.items()}
        except DocumentError as exc:
            return StorageResult.fail(str(exc))
        self._documents = documents
        logger.info("imported games", count=len(documents))
        return StorageResult.ok(True)

    async def clear_all_data(self) -> StorageResult[bool]:
        self._documents = {}
        return StorageResult.ok(True)
