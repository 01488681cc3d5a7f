import json
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gcloud_exceptions

from shared.dal.models import Game
from shared.storage import GAME_NOT_FOUND, GoogleCloudStorageBackend
from shared.storage.gcs import CONNECTION_PROBE_NAME, blob_name, game_id_from_blob_name

T0 = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)
T1 = datetime(2025, 2, 1, 9, 30, tzinfo=UTC)


class _FakeBlob:
    def __init__(self, bucket: "_FakeBucket", name: str) -> None:
        self._bucket = bucket
        self.name = name
        self.metadata = bucket.metadata.get(name)
        self.updated = T0

    def exists(self) -> bool:
        return self.name in self._bucket.contents

    def upload_from_string(self, content: str, content_type: str) -> None:
        self._bucket.contents[self.name] = content
        self._bucket.metadata[self.name] = self.metadata
        self._bucket.content_types[self.name] = content_type
        self._bucket.uploads.append(self.name)

    def download_as_bytes(self) -> bytes:
        return self._bucket.contents[self.name].encode()

    def delete(self) -> None:
        if self.name not in self._bucket.contents:
            raise gcloud_exceptions.NotFound(self.name)
        del self._bucket.contents[self.name]
        self._bucket.metadata.pop(self.name, None)
        self._bucket.deletes.append(self.name)


class _FakeBucket:
    def __init__(self) -> None:
        self.contents: dict[str, str] = {}
        self.metadata: dict[str, dict | None] = {}
        self.content_types: dict[str, str] = {}
        self.uploads: list[str] = []
        self.deletes: list[str] = []
        self.present = True

    def blob(self, name: str) -> _FakeBlob:
        return _FakeBlob(self, name)

    def exists(self) -> bool:
        return self.present

    def list_blobs(self, bucket_name, prefix="", max_results=None):
        names = sorted(n for n in self.contents if n.startswith(prefix))
        return [_FakeBlob(self, n) for n in names[:max_results]]


@pytest.fixture
def bucket() -> _FakeBucket:
    return _FakeBucket()


@pytest.fixture
def client(bucket: _FakeBucket) -> MagicMock:
    client = MagicMock()
    client.bucket.return_value = bucket
    client.list_blobs.side_effect = bucket.list_blobs
    return client


@pytest.fixture
def storage(client: MagicMock) -> GoogleCloudStorageBackend:
    return GoogleCloudStorageBackend("scores-bucket", "demo-project", client=client)


def _game(game_id="g1", name="Sprint", updated_at=T0) -> Game:
    return Game(id=game_id, name=name, is_time_based=False, created_at=T0, updated_at=updated_at)


def test_blob_naming():
    assert blob_name("abc") == "game-abc.json"
    assert game_id_from_blob_name("game-abc.json") == "abc"
    assert game_id_from_blob_name("other.json") is None
    assert game_id_from_blob_name("game-abc.txt") is None


class TestSaveGame:
    async def test_uploads_document_with_metadata(self, storage, bucket):
        result = await storage.save_game(_game())

        assert result.success
        document = json.loads(bucket.contents["game-g1.json"])
        assert document["version"] == "1.0"
        assert document["game"]["id"] == "g1"
        assert bucket.content_types["game-g1.json"] == "application/json"
        assert bucket.metadata["game-g1.json"] == {
            "gameId": "g1",
            "gameName": "Sprint",
            "lastUpdated": "2025-01-15T12:00:00+00:00",
        }

    async def test_client_error_becomes_failure(self, storage, bucket, monkeypatch):
        def _denied(self, content, content_type):
            raise gcloud_exceptions.Forbidden("access denied")

        monkeypatch.setattr(_FakeBlob, "upload_from_string", _denied)

        result = await storage.save_game(_game())

        assert not result.success
        assert "access denied" in result.error
        assert bucket.contents == {}


class TestLoadAndList:
    async def test_load_roundtrip(self, storage):
        game = _game()
        await storage.save_game(game)

        result = await storage.load_game("g1")

        assert result.data == game

    async def test_load_missing(self, storage):
        result = await storage.load_game("missing")

        assert result.error == GAME_NOT_FOUND

    async def test_load_corrupt_blob(self, storage, bucket):
        bucket.contents["game-g1.json"] = "not json"

        result = await storage.load_game("g1")

        assert not result.success

    async def test_list_reads_metadata_newest_first(self, storage):
        await storage.save_game(_game("old", "Old", T0))
        await storage.save_game(_game("new", "New", T1))

        listing = await storage.list_games()

        assert [(s.id, s.name) for s in listing.data] == [("new", "New"), ("old", "Old")]
        assert listing.data[0].updated_at == T1

    async def test_list_falls_back_without_metadata(self, storage, bucket):
        bucket.contents["game-bare.json"] = "{}"
        bucket.metadata["game-bare.json"] = None

        listing = await storage.list_games()

        assert listing.data[0].name == "Unknown Game"
        assert listing.data[0].updated_at == T0

    async def test_list_ignores_unrelated_blobs(self, storage, bucket):
        bucket.contents["game-notes.txt"] = "x"
        await storage.save_game(_game())

        listing = await storage.list_games()

        assert [s.id for s in listing.data] == ["g1"]

    async def test_list_failure(self, storage, client):
        client.list_blobs.side_effect = gcloud_exceptions.ServiceUnavailable("down")

        listing = await storage.list_games()

        assert not listing.success


class TestDeleteGame:
    async def test_deletes_blob(self, storage, bucket):
        await storage.save_game(_game())

        assert (await storage.delete_game("g1")).success
        assert "game-g1.json" not in bucket.contents

    async def test_missing_blob(self, storage):
        result = await storage.delete_game("missing")

        assert result.error == GAME_NOT_FOUND


class TestConnection:
    async def test_probe_written_and_removed(self, storage, bucket):
        result = await storage.test_connection()

        assert result.success
        assert CONNECTION_PROBE_NAME in bucket.uploads
        assert CONNECTION_PROBE_NAME in bucket.deletes
        assert CONNECTION_PROBE_NAME not in bucket.contents

    async def test_missing_bucket(self, storage, bucket):
        bucket.present = False

        result = await storage.test_connection()

        assert result.error == "Storage bucket does not exist"


class TestBackup:
    async def test_export_maps_ids_to_documents(self, storage):
        await storage.save_game(_game("g1"))
        await storage.save_game(_game("g2", "Marathon"))

        exported = json.loads((await storage.export_data()).data)

        assert set(exported) == {"g1", "g2"}
        assert exported["g2"]["game"]["name"] == "Marathon"

    async def test_import_replaces_all_games(self, storage, bucket):
        await storage.save_game(_game("stale", "Stale"))
        payload = json.dumps({"g1": {"game": _game("g1").model_dump(mode="json"), "version": "1.0"}})

        result = await storage.import_data(payload)

        assert result.success
        assert set(bucket.contents) == {"game-g1.json"}

    async def test_invalid_import_writes_nothing(self, storage, bucket):
        await storage.save_game(_game("g1"))
        bucket.uploads.clear()

        result = await storage.import_data('{"g2": {"version": "1.0"}}')

        assert not result.success
        assert bucket.uploads == []
        assert set(bucket.contents) == {"game-g1.json"}

    async def test_clear_all_data(self, storage, bucket):
        await storage.save_game(_game("g1"))
        await storage.save_game(_game("g2", "Marathon"))

        assert (await storage.clear_all_data()).success
        assert bucket.contents == {}
