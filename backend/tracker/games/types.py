from datetime import datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shared.dal.models import MAX_NOTES_LENGTH
from tracker.games.ranking import DEFAULT_LEADERBOARD_LIMIT, SortOrder

MIN_GAME_NAME_LENGTH = 2
MAX_GAME_NAME_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 200
MIN_PLAYER_NAME_LENGTH = 2
MAX_PLAYER_NAME_LENGTH = 30
MAX_SCORE_VALUE = 999_999_999
MAX_LEADERBOARD_LIMIT = 100


def _strip(value: object) -> object:
    return value.strip() if isinstance(value, str) else value


class CreateGameRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=MIN_GAME_NAME_LENGTH, max_length=MAX_GAME_NAME_LENGTH)
    description: str = Field(default="", max_length=MAX_DESCRIPTION_LENGTH)
    is_time_based: bool = Field(default=False, strict=True)

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strip_text(cls, v: object) -> object:
        return _strip(v)


class AddPlayerRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=MIN_PLAYER_NAME_LENGTH, max_length=MAX_PLAYER_NAME_LENGTH)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: object) -> object:
        return _strip(v)


class AddScoreRequest(BaseModel):
    """Score submission for an existing player (``player_id``) or a new one (``player_name``)."""

    model_config = ConfigDict(extra="forbid")

    player_id: str | None = None
    player_name: str | None = Field(
        default=None,
        min_length=MIN_PLAYER_NAME_LENGTH,
        max_length=MAX_PLAYER_NAME_LENGTH,
    )
    value: float = Field(ge=0, le=MAX_SCORE_VALUE, allow_inf_nan=False)
    notes: str = Field(default="", max_length=MAX_NOTES_LENGTH)

    @field_validator("player_name", mode="before")
    @classmethod
    def _blank_name_to_none(cls, v: object) -> object:
        return _strip(v) or None

    @field_validator("notes", mode="before")
    @classmethod
    def _strip_notes(cls, v: object) -> object:
        return _strip(v)

    @model_validator(mode="after")
    def _require_player(self) -> Self:
        if not self.player_id and not self.player_name:
            raise ValueError("Please select a player or create a new one")
        return self


class SelectGameRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    game_id: str | None = None


class ScoreQuery(BaseModel):
    """Query parameters for score listings."""

    model_config = ConfigDict(extra="forbid")

    sort: SortOrder = SortOrder.BEST_FIRST
    player_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int | None = Field(default=None, ge=1)


class LeaderboardQuery(BaseModel):
    model_config = ConfigDict(extra="forbid")

    limit: int = Field(default=DEFAULT_LEADERBOARD_LIMIT, ge=1, le=MAX_LEADERBOARD_LIMIT)
