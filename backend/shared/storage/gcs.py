"""Google Cloud Storage backend: one JSON blob per game.

Blob names follow ``game-<id>.json`` and carry custom metadata
(``gameId``, ``gameName``, ``lastUpdated``) so listings do not need to
download every document. The client library is blocking, so each call
runs in a worker thread via asyncio.to_thread.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from google.api_core import exceptions as gcloud_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from shared.dal.models import GameSummary
from shared.storage.document import (
    DocumentError,
    decode_game_file,
    encode_game_file,
    parse_backup,
    sort_summaries,
)
from shared.storage.result import GAME_NOT_FOUND, StorageResult

if TYPE_CHECKING:
    from shared.dal.models import Game

logger = structlog.get_logger()

BLOB_PREFIX = "game-"
BLOB_SUFFIX = ".json"
CONNECTION_PROBE_NAME = ".highscore-tracker-test"
UNKNOWN_GAME_NAME = "Unknown Game"

# Errors raised by the client library for network, permission and credential problems.
_CLIENT_ERRORS = (gcloud_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError, OSError)


def blob_name(game_id: str) -> str:
    return f"{BLOB_PREFIX}{game_id}{BLOB_SUFFIX}"


def game_id_from_blob_name(name: str) -> str | None:
    if not name.startswith(BLOB_PREFIX) or not name.endswith(BLOB_SUFFIX):
        return None
    return name[len(BLOB_PREFIX) : -len(BLOB_SUFFIX)]


class GoogleCloudStorageBackend:
    """Stores each game as ``game-<id>.json`` in a bucket."""

    def __init__(
        self,
        bucket_name: str,
        project_id: str,
        key_filename: str | None = None,
        client: storage.Client | None = None,
    ) -> None:
        if client is None:
            if key_filename:
                client = storage.Client.from_service_account_json(key_filename, project=project_id)
            else:
                client = storage.Client(project=project_id)
        self._client = client
        self._bucket_name = bucket_name
        self._bucket = client.bucket(bucket_name)

    def _upload(self, game: Game, content: str) -> None:
        blob = self._bucket.blob(blob_name(game.id))
        blob.metadata = {
            "gameId": game.id,
            "gameName": game.name,
            "lastUpdated": game.updated_at.isoformat(),
        }
        blob.upload_from_string(content, content_type="application/json")

    def _download(self, game_id: str) -> bytes | None:
        blob = self._bucket.blob(blob_name(game_id))
        if not blob.exists():
            return None
        return blob.download_as_bytes()

    def _list_blobs(self) -> list[storage.Blob]:
        return [
            blob
            for blob in self._client.list_blobs(self._bucket_name, prefix=BLOB_PREFIX)
            if game_id_from_blob_name(blob.name) is not None
        ]

    def _delete(self, game_id: str) -> bool:
        blob = self._bucket.blob(blob_name(game_id))
        if not blob.exists():
            return False
        blob.delete()
        return True

    async def save_game(self, game: Game) -> StorageResult[bool]:
        try:
            content = encode_game_file(game)
        except DocumentError as exc:
            return StorageResult.fail(str(exc))
        try:
            await asyncio.to_thread(self._upload, game, content)
        except _CLIENT_ERRORS as exc:
            logger.exception("failed to save game to bucket", game_id=game.id, bucket=self._bucket_name)
            return StorageResult.fail(str(exc))
        logger.info("saved game", game_id=game.id, blob=blob_name(game.id))
        return StorageResult.ok(True)

    async def load_game(self, game_id: str) -> StorageResult[Game]:
        try:
            raw = await asyncio.to_thread(self._download, game_id)
        except _CLIENT_ERRORS as exc:
            logger.exception("failed to load game from bucket", game_id=game_id)
            return StorageResult.fail(str(exc))
        if raw is None:
            return StorageResult.fail(GAME_NOT_FOUND)
        try:
            return StorageResult.ok(decode_game_file(raw))
        except DocumentError as exc:
            logger.warning("failed to decode game", game_id=game_id, error=str(exc))
            return StorageResult.fail(str(exc))

    async def list_games(self) -> StorageResult[list[GameSummary]]:
        try:
            blobs = await asyncio.to_thread(self._list_blobs)
        except _CLIENT_ERRORS as exc:
            logger.exception("failed to list games in bucket", bucket=self._bucket_name)
            return StorageResult.fail(str(exc))

        summaries = []
        for blob in blobs:
            metadata = blob.metadata or {}
            last_updated = metadata.get("lastUpdated")
            try:
                updated_at = datetime.fromisoformat(last_updated) if last_updated else blob.updated
                summaries.append(
                    GameSummary(
                        id=game_id_from_blob_name(blob.name),
                        name=metadata.get("gameName") or UNKNOWN_GAME_NAME,
                        updated_at=updated_at,
                    ),
                )
            except (TypeError, ValueError):
                logger.warning("skipping blob with unreadable metadata", blob=blob.name)
        return StorageResult.ok(sort_summaries(summaries))

    async def delete_game(self, game_id: str) -> StorageResult[bool]:
        try:
            deleted = await asyncio.to_thread(self._delete, game_id)
        except gcloud_exceptions.NotFound:
            return StorageResult.fail(GAME_NOT_FOUND)
        except _CLIENT_ERRORS as exc:
            logger.exception("failed to delete game from bucket", game_id=game_id)
            return StorageResult.fail(str(exc))
        if not deleted:
            return StorageResult.fail(GAME_NOT_FOUND)
        logger.info("deleted game", game_id=game_id, blob=blob_name(game_id))
        return StorageResult.ok(True)

    def _probe(self) -> bool:
        if not self._bucket.exists():
            return False
        list(self._client.list_blobs(self._bucket_name, max_results=1))
        probe = self._bucket.blob(CONNECTION_PROBE_NAME)
        probe.upload_from_string("test", content_type="text/plain")
        probe.delete()
        return True

    async def test_connection(self) -> StorageResult[bool]:
        """Check the bucket exists, is listable and accepts a probe write."""
        try:
            exists = await asyncio.to_thread(self._probe)
        except _CLIENT_ERRORS as exc:
            logger.warning("storage connection test failed", bucket=self._bucket_name, error=str(exc))
            return StorageResult.fail(str(exc))
        if not exists:
            return StorageResult.fail("Storage bucket does not exist")
        return StorageResult.ok(True)

    def _export(self) -> dict[str, object]:
        data: dict[str, object] = {}
        for blob in self._list_blobs():
            data[game_id_from_blob_name(blob.name)] = json.loads(blob.download_as_bytes())
        return data

    async def export_data(self) -> StorageResult[str]:
        try:
            data = await asyncio.to_thread(self._export)
        except (*_CLIENT_ERRORS, json.JSONDecodeError) as exc:
            logger.exception("failed to export games from bucket")
            return StorageResult.fail(str(exc))
        return StorageResult.ok(json.dumps(data, indent=2))

    def _replace_all(self, games: dict[str, Game]) -> None:
        stale = [blob for blob in self._list_blobs() if game_id_from_blob_name(blob.name) not in games]
        for game in games.values():
            self._upload(game, encode_game_file(game))
        for blob in stale:
            blob.delete()

    async def import_data(self, payload: str) -> StorageResult[bool]:
        """Replace the bucket's games with a validated backup.

        The payload is validated completely before any blob is written.
        """
        try:
            games = parse_backup(payload)
        except DocumentError as exc:
            return StorageResult.fail(str(exc))
        try:
            await asyncio.to_thread(self._replace_all, games)
        except _CLIENT_ERRORS as exc:
            logger.exception("failed to import games into bucket")
            return StorageResult.fail(str(exc))
        logger.info("imported games", count=len(games), bucket=self._bucket_name)
        return StorageResult.ok(True)

    def _delete_all(self) -> None:
        for blob in self._list_blobs():
            blob.delete()

    async def clear_all_data(self) -> StorageResult[bool]:
        try:
            await asyncio.to_thread(self._delete_all)
        except _CLIENT_ERRORS as exc:
            logger.exception("failed to clear bucket")
            return StorageResult.fail(str(exc))
        return StorageResult.ok(True)
