"""Score listing, submission and leaderboard handlers."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING
from uuid import uuid4

from starlette.responses import JSONResponse

from tracker.games.ranking import ScoreFilter
from tracker.games.types import AddScoreRequest, LeaderboardQuery, ScoreQuery
from tracker.views.game_handlers import not_found, storage_failure
from tracker.views.parsing import InvalidRequestError, parse_json_body, parse_query
from tracker.views.presenters import leaderboard_view, score_view

if TYPE_CHECKING:
    from starlette.requests import Request

    from tracker.games.store import GameStore


async def list_scores(request: Request) -> JSONResponse:
    """GET /games/{game_id}/scores?sort=&player_id=&date_from=&date_to=&limit="""
    store: GameStore = request.app.state.store
    game_id = request.path_params["game_id"]
    if store.get_game(game_id) is None:
        return not_found()

    query = parse_query(request, ScoreQuery)
    score_filter = ScoreFilter(
        player_id=query.player_id,
        date_from=query.date_from,
        date_to=query.date_to,
        limit=query.limit,
    )
    scores = store.get_scores(game_id, query.sort, score_filter)
    return JSONResponse({"sort": query.sort.value, "scores": [score_view(s) for s in scores]})


async def add_score(request: Request) -> JSONResponse:
    """POST /games/{game_id}/scores - record a score for an existing or new player."""
    store: GameStore = request.app.state.store
    game_id = request.path_params["game_id"]
    if store.get_game(game_id) is None:
        return not_found()

    req = await parse_json_body(request, AddScoreRequest)
    if req.player_id:
        player = store.get_player(req.player_id)
        if player is None:
            raise InvalidRequestError("Player not found")
        player_id, player_name = player.id, player.name
    else:
        # New players join the roster only once their first score is saved.
        player_name = req.player_name or ""
        player_id = str(uuid4())

    if not await store.add_score(game_id, player_id, player_name, req.value, req.notes or None):
        return storage_failure(store, "Failed to save score")

    game = store.get_game(game_id)
    score = next((s for s in reversed(game.scores) if s.player_id == player_id), None) if game else None
    return JSONResponse(
        {"score": score_view(score) if score else None, "playerId": player_id},
        status_code=HTTPStatus.CREATED,
    )


async def get_leaderboard(request: Request) -> JSONResponse:
    store: GameStore = request.app.state.store
    game_id = request.path_params["game_id"]
    if store.get_game(game_id) is None:
        return not_found()

    query = parse_query(request, LeaderboardQuery)
    return JSONResponse({"leaderboard": leaderboard_view(store.get_leaderboard(game_id, query.limit))})
