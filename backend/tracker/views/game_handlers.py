"""Game listing, creation, detail, deletion and selection handlers."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse, Response

from shared.storage import GAME_NOT_FOUND
from tracker.games.types import CreateGameRequest, SelectGameRequest
from tracker.views.parsing import parse_json_body
from tracker.views.presenters import game_detail_view, game_summary_view

if TYPE_CHECKING:
    from starlette.requests import Request

    from tracker.games.store import GameStore


def not_found(message: str = GAME_NOT_FOUND) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=HTTPStatus.NOT_FOUND)


def storage_failure(store: GameStore, fallback: str) -> JSONResponse:
    return JSONResponse({"error": store.error or fallback}, status_code=HTTPStatus.SERVICE_UNAVAILABLE)


def duplicate_name() -> JSONResponse:
    return JSONResponse({"error": "A game with this name already exists"}, status_code=HTTPStatus.CONFLICT)


async def list_games(request: Request) -> JSONResponse:
    store: GameStore = request.app.state.store
    return JSONResponse(
        {
            "games": [game_summary_view(g) for g in store.games],
            "gameCount": store.game_count,
            "playerCount": store.player_count,
        },
    )


async def create_game(request: Request) -> JSONResponse:
    """POST /games - validate the form, reject duplicate names, persist."""
    store: GameStore = request.app.state.store
    req = await parse_json_body(request, CreateGameRequest)

    if store.has_game_named(req.name):
        return duplicate_name()

    game_id = await store.create_game(req.name, req.description, req.is_time_based)
    if game_id is None:
        # A concurrent request may have taken the name while this one waited.
        if store.has_game_named(req.name):
            return duplicate_name()
        return storage_failure(store, "Failed to save game")
    return JSONResponse({"id": game_id}, status_code=HTTPStatus.CREATED)


async def get_game(request: Request) -> JSONResponse:
    store: GameStore = request.app.state.store
    game = store.get_game(request.path_params["game_id"])
    if game is None:
        return not_found()
    return JSONResponse(game_detail_view(game, store))


async def delete_game(request: Request) -> Response:
    store: GameStore = request.app.state.store
    if not await store.delete_game(request.path_params["game_id"]):
        if store.error == GAME_NOT_FOUND:
            return not_found()
        return storage_failure(store, "Failed to delete game")
    return Response(status_code=HTTPStatus.NO_CONTENT)


async def get_current_game(request: Request) -> JSONResponse:
    store: GameStore = request.app.state.store
    game = store.current_game
    return JSONResponse({"game": game_detail_view(game, store) if game else None})


async def select_current_game(request: Request) -> JSONResponse:
    """PUT /current-game - select a game by id, or clear the selection with null."""
    store: GameStore = request.app.state.store
    req = await parse_json_body(request, SelectGameRequest)
    if req.game_id is not None and store.get_game(req.game_id) is None:
        return not_found()
    store.set_current_game(req.game_id)
    game = store.current_game
    return JSONResponse({"game": game_detail_view(game, store) if game else None})
