"""File-backed storage backend keeping every game document in one JSON file.

This is the server-side analogue of browser local storage: a single key
(the file) holding ``{gameId: {"game": {...}, "version": "1.0"}}``.
The file is written atomically via temp-file-then-rename with owner-only
permissions (0o600).
"""

import asyncio
import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import structlog

from shared.dal.models import Game, GameSummary
from shared.storage.document import (
    DocumentError,
    decode_game_document,
    game_file_to_dict,
    parse_backup,
    sort_summaries,
    summarize,
)
from shared.storage.result import GAME_NOT_FOUND, StorageResult

logger = structlog.get_logger()

_FILE_PERMISSIONS = 0o600  # owner read/write only

CONNECTION_PROBE_NAME = ".highscore-tracker-test"


class LocalStorageBackend:
    """Stores all game documents in a single JSON file.

    Every mutation re-reads the file, applies the change to a copy and
    writes the whole file back. Uses asyncio.Lock so read-modify-write
    cycles within a single process do not interleave. Independent
    processes writing the same file overwrite each other (last write wins).
    """

    def __init__(self, file_path: str | Path) -> None:
        self._file_path = Path(file_path)
        self._lock = asyncio.Lock()

    def _read_documents(self) -> dict[str, Any]:
        """Read the raw document map. A missing file is an empty store.

        Raises OSError on read/parse failures for an existing file so a
        store we could not read is never overwritten.
        """
        if not self._file_path.exists():
            return {}

        try:
            data = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            msg = f"Failed to read games from {self._file_path}"
            raise OSError(msg) from exc

        if not isinstance(data, dict):
            msg = f"Expected JSON object at root in {self._file_path}"
            raise OSError(msg)
        return data

    def _write_documents(self, documents: dict[str, Any]) -> None:
        """Atomically replace the store file with ``documents``.

        Serializes before touching the filesystem so an encoding failure
        writes nothing.
        """
        content = json.dumps(documents, indent=2).encode("utf-8")
        self._file_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            dir=self._file_path.parent,
            prefix=".games_",
            suffix=".tmp",
        )
        fd_owned = True
        try:
            with os.fdopen(fd, "wb") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
                os.fchmod(f.fileno(), _FILE_PERMISSIONS)
            Path(tmp_path).replace(self._file_path)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise

    async def save_game(self, game: Game) -> StorageResult[bool]:
        async with self._lock:
            try:
                documents = self._read_documents()
                documents[game.id] = game_file_to_dict(game)
                self._write_documents(documents)
            except (OSError, TypeError, ValueError) as exc:
                logger.exception("failed to save game", game_id=game.id)
                return StorageResult.fail(str(exc))
        logger.info("saved game", game_id=game.id, path=str(self._file_path))
        return StorageResult.ok(True)

    async def load_game(self, game_id: str) -> StorageResult[Game]:
        try:
            documents = self._read_documents()
        except OSError as exc:
            return StorageResult.fail(str(exc))

        document = documents.get(game_id)
        if document is None:
            return StorageResult.fail(GAME_NOT_FOUND)
        try:
            return StorageResult.ok(decode_game_document(document))
        except DocumentError as exc:
            logger.warning("failed to decode game", game_id=game_id, error=str(exc))
            return StorageResult.fail(str(exc))

    async def list_games(self) -> StorageResult[list[GameSummary]]:
        try:
            documents = self._read_documents()
        except OSError as exc:
            return StorageResult.fail(str(exc))

        summaries = []
        for game_id, document in documents.items():
            try:
                summaries.append(summarize(decode_game_document(document)))
            except DocumentError:
                logger.warning("skipping unreadable game document", game_id=game_id)
        return StorageResult.ok(sort_summaries(summaries))

    async def delete_game(self, game_id: str) -> StorageResult[bool]:
        async with self._lock:
            try:
                documents = self._read_documents()
                if game_id not in documents:
                    return StorageResult.fail(GAME_NOT_FOUND)
                del documents[game_id]
                self._write_documents(documents)
            except OSError as exc:
                logger.exception("failed to delete game", game_id=game_id)
                return StorageResult.fail(str(exc))
        logger.info("deleted game", game_id=game_id)
        return StorageResult.ok(True)

    async def test_connection(self) -> StorageResult[bool]:
        """Write and remove a probe file next to the store file."""
        probe = self._file_path.parent / CONNECTION_PROBE_NAME
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            probe.write_text("test", encoding="utf-8")
            probe.unlink()
            self._read_documents()
        except OSError as exc:
            with contextlib.suppress(OSError):
                probe.unlink()
            return StorageResult.fail(str(exc))
        return StorageResult.ok(True)

    async def export_data(self) -> StorageResult[str]:
        try:
            documents = self._read_documents()
        except OSError as exc:
            return StorageResult.fail(str(exc))
        return StorageResult.ok(json.dumps(documents, indent=2))

    async def import_data(self, payload: str) -> StorageResult[bool]:
        """Replace the whole store with a validated backup."""
        try:
            games = parse_backup(payload)
        except DocumentError as exc:
            return StorageResult.fail(str(exc))

        async with self._lock:
            try:
                self._write_documents({game_id: game_file_to_dict(game) for game_id, game in games.items()})
            except OSError as exc:
                logger.exception("failed to import games")
                return StorageResult.fail(str(exc))
        logger.info("imported games", count=len(games))
        return StorageResult.ok(True)

    async def clear_all_data(self) -> StorageResult[bool]:
        async with self._lock:
            try:
                self._file_path.unlink(missing_ok=True)
            except OSError as exc:
                return StorageResult.fail(str(exc))
        logger.info("cleared all games", path=str(self._file_path))
        return StorageResult.ok(True)
