from __future__ import annotations

import contextlib
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.logging import setup_logging
from shared.storage import StorageSettings, create_storage_backend
from tracker.games.store import GameStore
from tracker.server.settings import TrackerServerSettings
from tracker.views import (
    add_player,
    add_score,
    create_game,
    delete_game,
    export_data,
    get_current_game,
    get_game,
    get_leaderboard,
    import_data,
    list_games,
    list_players,
    list_scores,
    select_current_game,
    storage_status,
)
from tracker.views.parsing import InvalidRequestError

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

    from shared.storage import StorageBackend


async def _invalid_request_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Render InvalidRequestError as a 422 JSON error."""
    invalid = cast("InvalidRequestError", exc)
    body: dict[str, object] = {"error": invalid.message}
    if invalid.details:
        body["details"] = invalid.details
    return JSONResponse(body, status_code=HTTPStatus.UNPROCESSABLE_ENTITY)


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


async def store_state(request: Request) -> JSONResponse:
    store: GameStore = request.app.state.store
    current = store.current_game
    return JSONResponse(
        {
            "isLoading": store.is_loading,
            "error": store.error,
            "gameCount": store.game_count,
            "playerCount": store.player_count,
            "currentGameId": current.id if current else None,
        },
    )


def create_app(
    settings: TrackerServerSettings | None = None,
    storage_settings: StorageSettings | None = None,
    storage: StorageBackend | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = TrackerServerSettings()
    if storage is None:
        if storage_settings is None:  # pragma: no cover
            storage_settings = StorageSettings()
        storage = create_storage_backend(storage_settings)

    routes = [
        Route("/health", health, methods=["GET"], name="health"),
        Route("/state", store_state, methods=["GET"], name="store_state"),
        Route("/games", list_games, methods=["GET"], name="list_games"),
        Route("/games", create_game, methods=["POST"], name="create_game"),
        Route("/games/{game_id}", get_game, methods=["GET"], name="get_game"),
        Route("/games/{game_id}", delete_game, methods=["DELETE"], name="delete_game"),
        Route("/games/{game_id}/scores", list_scores, methods=["GET"], name="list_scores"),
        Route("/games/{game_id}/scores", add_score, methods=["POST"], name="add_score"),
        Route("/games/{game_id}/leaderboard", get_leaderboard, methods=["GET"], name="get_leaderboard"),
        Route("/current-game", get_current_game, methods=["GET"], name="get_current_game"),
        Route("/current-game", select_current_game, methods=["PUT"], name="select_current_game"),
        Route("/players", list_players, methods=["GET"], name="list_players"),
        Route("/players", add_player, methods=["POST"], name="add_player"),
        Route("/storage/status", storage_status, methods=["GET"], name="storage_status"),
        Route("/export", export_data, methods=["GET"], name="export_data"),
        Route("/import", import_data, methods=["POST"], name="import_data"),
    ]

    store = GameStore(storage)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        await store.load_games()
        if store.has_error:
            logger.warning("initial game load failed", error=store.error)
        if settings.seed_sample_data:
            await store.seed_sample_data()
        yield

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={InvalidRequestError: _invalid_request_handler},
    )
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type"],
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.store = store

    logger.info("tracker server ready", storage=type(storage).__name__)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory tracker.server.app:get_app."""
    s = TrackerServerSettings()
    setup_logging(log_dir=s.log_dir)
    return create_app(settings=s, storage_settings=StorageSettings())
