"""Transform store data into JSON-friendly view models."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tracker.games.formatting import format_score, rank_label
from tracker.games.ranking import best_first

if TYPE_CHECKING:
    from shared.dal.models import Game, Player, Score
    from tracker.games.ranking import LeaderboardEntry
    from tracker.games.store import GameStore


def player_view(player: Player) -> dict[str, Any]:
    return player.model_dump(mode="json")


def score_view(score: Score) -> dict[str, Any]:
    return {**score.model_dump(mode="json"), "display": format_score(score.value, is_time_based=score.is_time)}


def game_summary_view(game: Game) -> dict[str, Any]:
    """List entry: game fields without the score history, plus count and best score."""
    ranked = best_first(game.scores, is_time_based=game.is_time_based)
    return {
        "id": game.id,
        "name": game.name,
        "description": game.description,
        "isTimeBased": game.is_time_based,
        "createdAt": game.created_at.isoformat(),
        "updatedAt": game.updated_at.isoformat(),
        "scoreCount": len(game.scores),
        "bestScore": score_view(ranked[0]) if ranked else None,
    }


def leaderboard_view(entries: list[LeaderboardEntry]) -> list[dict[str, Any]]:
    return [
        {
            "rank": position,
            "rankLabel": rank_label(position),
            "player": player_view(entry.player),
            "bestScore": score_view(entry.best_score),
        }
        for position, entry in enumerate(entries, start=1)
    ]


def game_detail_view(game: Game, store: GameStore) -> dict[str, Any]:
    """Summary fields plus leaderboard and scores in best-first order."""
    return {
        **game_summary_view(game),
        "leaderboard": leaderboard_view(store.get_leaderboard(game.id)),
        "scores": [score_view(s) for s in store.get_scores(game.id)],
    }
