"""Score ordering, filtering, best-score and leaderboard computation.

All functions are pure: they never reorder or mutate a game's stored
score list and always return new sequences.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, NamedTuple

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from shared.dal.models import Game, Player, Score

DEFAULT_LEADERBOARD_LIMIT = 10


class SortOrder(StrEnum):
    BEST_FIRST = "best_first"
    WORST_FIRST = "worst_first"
    NEWEST_FIRST = "newest_first"
    OLDEST_FIRST = "oldest_first"


class ScoreFilter(BaseModel, frozen=True):
    """Optional criteria applied before sorting; ``limit`` caps the sorted result."""

    player_id: str | None = None
    date_from: datetime | None = None  # inclusive
    date_to: datetime | None = None  # inclusive
    limit: int | None = Field(default=None, ge=1)


class LeaderboardEntry(NamedTuple):
    player: Player
    best_score: Score


def is_better(candidate: Score, current: Score, *, is_time_based: bool) -> bool:
    """Return True when ``candidate`` strictly beats ``current``. Ties are not better."""
    if is_time_based:
        return candidate.value < current.value
    return candidate.value > current.value


def best_first(scores: Iterable[Score], *, is_time_based: bool) -> list[Score]:
    """Stable sort with the winning value first; equal values keep insertion order."""
    return sorted(scores, key=lambda s: s.value, reverse=not is_time_based)


def filter_scores(scores: Iterable[Score], score_filter: ScoreFilter | None) -> list[Score]:
    result = list(scores)
    if score_filter is None:
        return result
    if score_filter.player_id:
        result = [s for s in result if s.player_id == score_filter.player_id]
    if score_filter.date_from is not None:
        result = [s for s in result if s.achieved_at >= score_filter.date_from]
    if score_filter.date_to is not None:
        result = [s for s in result if s.achieved_at <= score_filter.date_to]
    return result


def sort_scores(scores: Sequence[Score], sort_order: SortOrder, *, is_time_based: bool) -> list[Score]:
    """Order ``scores`` for display.

    WORST_FIRST is the exact reverse of BEST_FIRST, and NEWEST_FIRST the exact
    reverse of OLDEST_FIRST, so paired orders agree even on ties.
    """
    match sort_order:
        case SortOrder.BEST_FIRST:
            return best_first(scores, is_time_based=is_time_based)
        case SortOrder.WORST_FIRST:
            return best_first(scores, is_time_based=is_time_based)[::-1]
        case SortOrder.OLDEST_FIRST:
            return sorted(scores, key=lambda s: s.achieved_at)
        case SortOrder.NEWEST_FIRST:
            return sorted(scores, key=lambda s: s.achieved_at)[::-1]
    raise ValueError(f"Unknown sort order: {sort_order!r}")


def select_scores(
    game: Game,
    sort_order: SortOrder = SortOrder.BEST_FIRST,
    score_filter: ScoreFilter | None = None,
) -> list[Score]:
    """Filter, then sort, then apply the count cap."""
    scores = sort_scores(filter_scores(game.scores, score_filter), sort_order, is_time_based=game.is_time_based)
    if score_filter is not None and score_filter.limit is not None:
        scores = scores[: score_filter.limit]
    return scores


def best_score(game: Game, player_id: str) -> Score | None:
    """The player's winning score; the first one recorded wins an exact tie."""
    best: Score | None = None
    for score in game.scores:
        if score.player_id != player_id:
            continue
        if best is None or is_better(score, best, is_time_based=game.is_time_based):
            best = score
    return best


def build_leaderboard(
    game: Game,
    players: Iterable[Player],
    limit: int = DEFAULT_LEADERBOARD_LIMIT,
) -> list[LeaderboardEntry]:
    """Rank each player's best score; players without scores are excluded."""
    entries = []
    for player in players:
        score = best_score(game, player.id)
        if score is not None:
            entries.append(LeaderboardEntry(player=player, best_score=score))
    entries.sort(key=lambda e: e.best_score.value, reverse=not game.is_time_based)
    return entries[: max(limit, 0)]
