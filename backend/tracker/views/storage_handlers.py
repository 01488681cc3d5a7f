"""Storage status, backup export and import handlers."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse, Response

from shared.storage.document import DocumentError, parse_backup
from tracker.views.game_handlers import storage_failure
from tracker.views.parsing import InvalidRequestError

if TYPE_CHECKING:
    from starlette.requests import Request

    from shared.storage import StorageBackend
    from tracker.games.store import GameStore

BACKUP_FILENAME = "highscore-tracker-backup.json"


async def storage_status(request: Request) -> JSONResponse:
    storage: StorageBackend = request.app.state.storage
    result = await storage.test_connection()
    if not result.success:
        return JSONResponse(
            {"connected": False, "error": result.error},
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
        )
    return JSONResponse({"connected": True})


async def export_data(request: Request) -> Response:
    """GET /export - whole-store backup as a JSON attachment."""
    storage: StorageBackend = request.app.state.storage
    result = await storage.export_data()
    if not result.success or result.data is None:
        return JSONResponse(
            {"error": result.error or "Failed to export data"},
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
        )
    return Response(
        content=result.data,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{BACKUP_FILENAME}"'},
    )


async def import_data(request: Request) -> JSONResponse:
    """POST /import - replace every stored game with the uploaded backup, then reload."""
    store: GameStore = request.app.state.store
    try:
        payload = (await request.body()).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidRequestError("Backup must be UTF-8 encoded JSON") from exc
    try:
        parse_backup(payload)
    except DocumentError as exc:
        raise InvalidRequestError(str(exc)) from exc

    if not await store.import_backup(payload):
        return storage_failure(store, "Failed to import data")
    return JSONResponse({"imported": store.game_count})
