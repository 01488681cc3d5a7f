"""Persistence models for games, scores and players.

Models serialize with camelCase field names so stored documents keep the
``{"game": {...}, "version": "1.0"}`` shape used by existing game files.
"""

from datetime import datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Current on-disk document version. Readers accept unknown versions.
GAME_FILE_VERSION = "1.0"

MAX_NOTES_LENGTH = 100


class TrackerModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        validate_by_name=True,
        validate_by_alias=True,
        serialize_by_alias=True,
    )


class Player(TrackerModel):
    """A named participant. Immutable once created."""

    id: str
    name: str
    created_at: datetime


class Score(TrackerModel):
    """One recorded result for one player in one game."""

    id: str
    player_id: str
    player_name: str  # copy of the player's name at submission time
    value: float = Field(ge=0, allow_inf_nan=False)
    is_time: bool  # always equal to the parent game's is_time_based
    achieved_at: datetime
    notes: str | None = Field(default=None, max_length=MAX_NOTES_LENGTH)


class Game(TrackerModel):
    """A named competition with a fixed ranking direction and a score history.

    ``scores`` keeps insertion order; display orderings are derived views.
    """

    id: str
    name: str
    description: str | None = None
    is_time_based: bool  # lower value wins when True
    scores: tuple[Score, ...] = ()
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _validate_invariants(self) -> Self:
        if self.updated_at < self.created_at:
            raise ValueError("updatedAt must not be earlier than createdAt")
        for score in self.scores:
            if score.is_time != self.is_time_based:
                raise ValueError(f"Score '{score.id}' isTime does not match game isTimeBased")
        return self

    def with_score(self, score: Score, now: datetime) -> Self:
        """Return a validated copy with ``score`` appended and ``updated_at`` refreshed."""
        return type(self).model_validate(
            {
                **self.model_dump(by_alias=False),
                "scores": (*self.scores, score),
                "updated_at": max(now, self.updated_at),
            },
        )


class GameSummary(TrackerModel):
    """Listing entry returned by storage backends."""

    id: str
    name: str
    updated_at: datetime


class GameFile(TrackerModel):
    """Persisted document wrapping one game."""

    game: Game
    version: str = GAME_FILE_VERSION
