"""Request body and query-string parsing into pydantic request models."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

if TYPE_CHECKING:
    from starlette.requests import Request


class InvalidRequestError(Exception):
    """Raised by handlers for malformed or invalid request input (HTTP 422)."""

    def __init__(self, message: str, details: list[dict[str, str]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


def _validation_details(exc: ValidationError) -> list[dict[str, str]]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors(include_url=False)
    ]


def validate_model[M: BaseModel](model: type[M], data: Any) -> M:  # noqa: ANN401
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidRequestError("Invalid request", _validation_details(exc)) from exc


async def parse_json_body[M: BaseModel](request: Request, model: type[M]) -> M:
    """Decode the JSON body into ``model``. An empty body validates as ``{}``."""
    raw_body = await request.body()
    if not raw_body.strip():
        body: Any = {}
    else:
        try:
            body = json.loads(raw_body)
        except ValueError as exc:
            raise InvalidRequestError("Invalid JSON body") from exc
    if not isinstance(body, dict):
        raise InvalidRequestError("Expected a JSON object")
    return validate_model(model, body)


def parse_query[M: BaseModel](request: Request, model: type[M]) -> M:
    """Validate query parameters into ``model``; blank values are treated as absent."""
    params = {key: value for key, value in request.query_params.items() if value != ""}
    return validate_model(model, params)
