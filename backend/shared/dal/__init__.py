"""Data access layer: shared persistence models."""

from shared.dal.models import GAME_FILE_VERSION, Game, GameFile, GameSummary, Player, Score

__all__ = [
    "GAME_FILE_VERSION",
    "Game",
    "GameFile",
    "GameSummary",
    "Player",
    "Score",
]
