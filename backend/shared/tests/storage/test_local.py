import json
import stat
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

from shared.dal.models import Game
from shared.storage import GAME_NOT_FOUND, LocalStorageBackend
from shared.storage.local import CONNECTION_PROBE_NAME

T0 = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


def _game(game_id="g1", name="Sprint", updated_at=T0) -> Game:
    return Game(id=game_id, name=name, is_time_based=True, created_at=T0, updated_at=updated_at)


class TestSaveGame:
    async def test_creates_file_with_document_map(self, tmp_path: Path):
        path = tmp_path / "games.json"
        storage = LocalStorageBackend(path)

        result = await storage.save_game(_game())

        assert result.success
        data = json.loads(path.read_text())
        assert data["g1"]["version"] == "1.0"
        assert data["g1"]["game"]["name"] == "Sprint"

    async def test_creates_parent_directories(self, tmp_path: Path):
        path = tmp_path / "nested" / "dir" / "games.json"

        await LocalStorageBackend(path).save_game(_game())

        assert path.exists()

    async def test_file_has_owner_only_permissions(self, tmp_path: Path):
        path = tmp_path / "games.json"

        await LocalStorageBackend(path).save_game(_game())

        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    async def test_upsert_keeps_other_games(self, tmp_path: Path):
        storage = LocalStorageBackend(tmp_path / "games.json")
        await storage.save_game(_game("g1"))
        await storage.save_game(_game("g2", "Marathon"))
        await storage.save_game(_game("g1", "Sprint Renamed"))

        listing = await storage.list_games()

        assert {s.id: s.name for s in listing.data} == {"g1": "Sprint Renamed", "g2": "Marathon"}

    async def test_no_temp_files_left_behind(self, tmp_path: Path):
        storage = LocalStorageBackend(tmp_path / "games.json")
        await storage.save_game(_game())

        assert [p.name for p in tmp_path.iterdir()] == ["games.json"]

    async def test_failed_write_leaves_original_and_no_temp_file(self, tmp_path: Path):
        path = tmp_path / "games.json"
        storage = LocalStorageBackend(path)
        await storage.save_game(_game("g1"))
        original = path.read_text()

        with patch("shared.storage.local.os.fsync", side_effect=OSError("disk full")):
            result = await storage.save_game(_game("g2", "Marathon"))

        assert not result.success
        assert "disk full" in result.error
        assert path.read_text() == original
        assert [p.name for p in tmp_path.iterdir()] == ["games.json"]

    async def test_corrupt_file_is_not_overwritten(self, tmp_path: Path):
        path = tmp_path / "games.json"
        path.write_text("{corrupt json")
        storage = LocalStorageBackend(path)

        result = await storage.save_game(_game())

        assert not result.success
        assert "Failed to read games" in result.error
        assert path.read_text() == "{corrupt json"

    async def test_non_object_root_is_not_overwritten(self, tmp_path: Path):
        path = tmp_path / "games.json"
        path.write_text("[]")

        result = await LocalStorageBackend(path).save_game(_game())

        assert not result.success
        assert "Expected JSON object" in result.error
        assert path.read_text() == "[]"


class TestLoadAndList:
    async def test_missing_file_is_empty_store(self, tmp_path: Path):
        storage = LocalStorageBackend(tmp_path / "games.json")

        listing = await storage.list_games()
        loaded = await storage.load_game("g1")

        assert listing.success
        assert listing.data == []
        assert loaded.error == GAME_NOT_FOUND

    async def test_load_returns_equal_game(self, tmp_path: Path):
        storage = LocalStorageBackend(tmp_path / "games.json")
        game = _game()
        await storage.save_game(game)

        result = await storage.load_game("g1")

        assert result.data == game

    async def test_list_skips_unreadable_entries(self, tmp_path: Path):
        path = tmp_path / "games.json"
        storage = LocalStorageBackend(path)
        await storage.save_game(_game("g1"))
        data = json.loads(path.read_text())
        data["broken"] = {"game": {"id": "broken"}, "version": "1.0"}
        path.write_text(json.dumps(data))

        listing = await storage.list_games()

        assert [s.id for s in listing.data] == ["g1"]

    async def test_list_orders_by_updated_desc(self, tmp_path: Path):
        storage = LocalStorageBackend(tmp_path / "games.json")
        await storage.save_game(_game("old", "Old", T0))
        await storage.save_game(_game("new", "New", datetime(2025, 6, 1, tzinfo=UTC)))

        listing = await storage.list_games()

        assert [s.id for s in listing.data] == ["new", "old"]

    async def test_corrupt_file_fails_listing(self, tmp_path: Path):
        path = tmp_path / "games.json"
        path.write_text("garbage")

        listing = await LocalStorageBackend(path).list_games()

        assert not listing.success


class TestDeleteGame:
    async def test_removes_game(self, tmp_path: Path):
        storage = LocalStorageBackend(tmp_path / "games.json")
        await storage.save_game(_game("g1"))
        await storage.save_game(_game("g2", "Marathon"))

        assert (await storage.delete_game("g1")).success

        listing = await storage.list_games()
        assert [s.id for s in listing.data] == ["g2"]

    async def test_missing_game(self, tmp_path: Path):
        result = await LocalStorageBackend(tmp_path / "games.json").delete_game("missing")

        assert not result.success
        assert result.error == GAME_NOT_FOUND


class TestConnection:
    async def test_probe_file_is_cleaned_up(self, tmp_path: Path):
        storage = LocalStorageBackend(tmp_path / "games.json")

        result = await storage.test_connection()

        assert result.success
        assert not (tmp_path / CONNECTION_PROBE_NAME).exists()

    async def test_corrupt_store_fails(self, tmp_path: Path):
        path = tmp_path / "games.json"
        path.write_text("garbage")

        result = await LocalStorageBackend(path).test_connection()

        assert not result.success


class TestBackup:
    async def test_export_matches_file_contents(self, tmp_path: Path):
        path = tmp_path / "games.json"
        storage = LocalStorageBackend(path)
        await storage.save_game(_game())

        exported = await storage.export_data()

        assert json.loads(exported.data) == json.loads(path.read_text())

    async def test_import_replaces_store(self, tmp_path: Path):
        source = LocalStorageBackend(tmp_path / "source.json")
        await source.save_game(_game("g1"))
        payload = (await source.export_data()).data

        target = LocalStorageBackend(tmp_path / "target.json")
        await target.save_game(_game("stale", "Stale"))
        result = await target.import_data(payload)

        assert result.success
        listing = await target.list_games()
        assert [s.id for s in listing.data] == ["g1"]

    async def test_invalid_import_changes_nothing(self, tmp_path: Path):
        path = tmp_path / "games.json"
        storage = LocalStorageBackend(path)
        await storage.save_game(_game())
        original = path.read_text()

        result = await storage.import_data('{"g1": {"game": {"id": "g1"}}}')

        assert not result.success
        assert path.read_text() == original

    async def test_clear_all_data_removes_file(self, tmp_path: Path):
        path = tmp_path / "games.json"
        storage = LocalStorageBackend(path)
        await storage.save_game(_game())

        assert (await storage.clear_all_data()).success
        assert not path.exists()
        assert (await storage.list_games()).data == []
