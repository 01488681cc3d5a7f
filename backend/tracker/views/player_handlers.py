"""Player roster handlers."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from tracker.games.types import AddPlayerRequest
from tracker.views.parsing import parse_json_body
from tracker.views.presenters import player_view

if TYPE_CHECKING:
    from starlette.requests import Request

    from tracker.games.store import GameStore


async def list_players(request: Request) -> JSONResponse:
    store: GameStore = request.app.state.store
    return JSONResponse({"players": [player_view(p) for p in store.players]})


async def add_player(request: Request) -> JSONResponse:
    store: GameStore = request.app.state.store
    req = await parse_json_body(request, AddPlayerRequest)
    return JSONResponse({"id": store.add_player(req.name)}, status_code=HTTPStatus.CREATED)
