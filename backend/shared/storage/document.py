"""Encoding and decoding of persisted game documents."""

import json
from typing import Any

import structlog
from pydantic import ValidationError

from shared.dal.models import GAME_FILE_VERSION, Game, GameFile, GameSummary

logger = structlog.get_logger()


class DocumentError(ValueError):
    """Raised when a stored document cannot be encoded or decoded."""


def encode_game_file(game: Game) -> str:
    """Serialize ``game`` wrapped in a versioned document. Always writes the current version."""
    try:
        return GameFile(game=game, version=GAME_FILE_VERSION).model_dump_json(indent=2)
    except (TypeError, ValueError) as exc:
        raise DocumentError(f"Failed to serialize game '{game.id}'") from exc


def game_file_to_dict(game: Game) -> dict[str, Any]:
    """Return the JSON-compatible document for ``game``."""
    return GameFile(game=game).model_dump(mode="json")


def decode_game_document(document: Any) -> Game:  # noqa: ANN401
    """Parse an already-decoded document into a Game.

    Unknown ``version`` values are logged and the ``game`` field is read anyway.
    """
    if not isinstance(document, dict) or "game" not in document:
        raise DocumentError("Document has no 'game' field")

    version = document.get("version")
    if version != GAME_FILE_VERSION:
        logger.warning("reading game document with unrecognized version", version=version)

    try:
        return Game.model_validate(document["game"])
    except ValidationError as exc:
        raise DocumentError(f"Invalid game document: {exc.error_count()} validation error(s)") from exc


def decode_game_file(raw: str | bytes) -> Game:
    """Parse a JSON document string into a Game."""
    try:
        document = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DocumentError("Malformed JSON in game document") from exc
    return decode_game_document(document)


def summarize(game: Game) -> GameSummary:
    return GameSummary(id=game.id, name=game.name, updated_at=game.updated_at)


def sort_summaries(summaries: list[GameSummary]) -> list[GameSummary]:
    """Order summaries most recently updated first."""
    return sorted(summaries, key=lambda s: s.updated_at, reverse=True)


def parse_backup(payload: str) -> dict[str, Game]:
    """Parse a whole-store backup (``{gameId: document}``) and validate every entry.

    Raises DocumentError when the payload is malformed or any entry is invalid,
    so an import either applies completely or not at all.
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise DocumentError("Invalid JSON data") from exc

    if not isinstance(data, dict):
        raise DocumentError("Expected JSON object at root of backup")

    games: dict[str, Game] = {}
    for game_id, document in data.items():
        game = decode_game_document(document)
        if game.id != game_id:
            raise DocumentError(f"Key mismatch in backup: '{game_id}' != game id '{game.id}'")
        games[game_id] = game
    return games
