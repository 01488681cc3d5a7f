"""In-memory game and player state backed by a storage backend.

The store is the single writer to its backend. Every mutation builds a new
Game value, persists the full document first and only then commits it to
memory, so a failed write leaves the last-known-good state untouched.
Subscribers are notified with an immutable snapshot after each change.
"""

from __future__ import annotations

import asyncio
import contextlib
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from shared.dal.models import MAX_NOTES_LENGTH, Game, Player, Score
from tracker.games.ranking import (
    DEFAULT_LEADERBOARD_LIMIT,
    LeaderboardEntry,
    ScoreFilter,
    SortOrder,
    best_score,
    build_leaderboard,
    select_scores,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from shared.storage import StorageBackend

logger = structlog.get_logger()

GAME_NOT_FOUND_MESSAGE = "Game not found"


@dataclass(frozen=True)
class StoreState:
    """Immutable view of the store handed to subscribers."""

    games: tuple[Game, ...]
    players: tuple[Player, ...]
    current_game: Game | None
    is_loading: bool
    error: str | None


def normalize_game_name(name: str) -> str:
    return name.strip().casefold()


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class GameStore:
    """Owns the in-memory games and player roster.

    Players are not persisted on their own. ``load_games`` rebuilds the
    roster from the score history of every loaded game and keeps players
    added since.

    Mutations of one game are serialized by a per-game lock held from the
    read through the commit. Game creation holds a store-wide lock so the
    unique-name check and the append cannot interleave.
    """

    def __init__(
        self,
        storage: StorageBackend,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._games: list[Game] = []
        self._players: list[Player] = []
        self._current_game_id: str | None = None
        self._in_flight = 0  # operations currently running
        self._error: str | None = None
        self._listeners: list[Callable[[StoreState], None]] = []
        self._game_locks: dict[str, asyncio.Lock] = {}  # game_id -> Lock
        self._create_lock = asyncio.Lock()

    # -- observable state --

    @property
    def games(self) -> tuple[Game, ...]:
        return tuple(self._games)

    @property
    def players(self) -> tuple[Player, ...]:
        return tuple(self._players)

    @property
    def current_game(self) -> Game | None:
        if self._current_game_id is None:
            return None
        return self.get_game(self._current_game_id)

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def game_count(self) -> int:
        return len(self._games)

    @property
    def player_count(self) -> int:
        return len(self._players)

    @property
    def has_error(self) -> bool:
        return self._error is not None

    def snapshot(self) -> StoreState:
        return StoreState(
            games=self.games,
            players=self.players,
            current_game=self.current_game,
            is_loading=self.is_loading,
            error=self._error,
        )

    def subscribe(self, listener: Callable[[StoreState], None]) -> Callable[[], None]:
        """Register ``listener`` for state changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("store listener failed")

    def _fail(self, message: str) -> None:
        self._error = message
        logger.warning("store operation failed", error=message)

    @contextlib.contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        """Track loading/error flags around an operation.

        ``is_loading`` stays set while any operation is still in flight.

        Unexpected exceptions are logged and surfaced as the store error;
        the operation then reports failure to its caller.
        """
        self._in_flight += 1
        self._error = None
        self._notify()
        try:
            yield
        except Exception as exc:
            logger.exception("unexpected error in store operation", operation=name)
            self._error = str(exc) or "Unknown error"
        finally:
            self._in_flight -= 1
            self._notify()

    # -- lookups --

    def get_game(self, game_id: str) -> Game | None:
        return next((g for g in self._games if g.id == game_id), None)

    def get_player(self, player_id: str) -> Player | None:
        return next((p for p in self._players if p.id == player_id), None)

    def has_game_named(self, name: str) -> bool:
        """Case-insensitive, whitespace-trimmed name check."""
        normalized = normalize_game_name(name)
        return any(normalize_game_name(g.name) == normalized for g in self._games)

    # -- operations --

    async def load_games(self) -> None:
        """Replace in-memory games with everything the backend lists.

        A game that fails to load is skipped; only a failed listing is
        surfaced as an error.
        """
        with self._operation("load_games"):
            listing = await self._storage.list_games()
            if not listing.success:
                self._fail(listing.error or "Failed to load games")
                return

            loaded: list[Game] = []
            for summary in listing.data or []:
                result = await self._storage.load_game(summary.id)
                if result.success and result.data is not None:
                    loaded.append(result.data)
                else:
                    logger.warning("skipping game that failed to load", game_id=summary.id, error=result.error)

            self._games = loaded
            self._merge_players_from_scores(loaded)
            logger.info("loaded games", count=len(loaded), players=len(self._players))

    def _merge_players_from_scores(self, games: list[Game]) -> None:
        """Add roster entries for players only known through their scores.

        The first score seen for a player id supplies the name; the earliest
        achievement time becomes ``created_at``.
        """
        known = {p.id: p for p in self._players}
        derived: dict[str, Player] = {}
        for game in games:
            for score in game.scores:
                if score.player_id in known:
                    continue
                existing = derived.get(score.player_id)
                if existing is None:
                    derived[score.player_id] = Player(
                        id=score.player_id,
                        name=score.player_name,
                        created_at=score.achieved_at,
                    )
                elif score.achieved_at < existing.created_at:
                    derived[score.player_id] = existing.model_copy(update={"created_at": score.achieved_at})
        self._players.extend(derived.values())

    def _game_lock(self, game_id: str) -> asyncio.Lock:
        return self._game_locks.setdefault(game_id, asyncio.Lock())

    async def create_game(self, name: str, description: str | None, is_time_based: bool) -> str | None:  # noqa: FBT001
        """Create and persist a new game. Returns its id, or None on failure."""
        with self._operation("create_game"):
            clean_name = name.strip()
            if not clean_name:
                self._fail("Game name is required")
                return None

            async with self._create_lock:
                if self.has_game_named(clean_name):
                    self._fail(f"A game named '{clean_name}' already exists")
                    return None

                now = self._clock()
                game = Game(
                    id=str(uuid4()),
                    name=clean_name,
                    description=(description or "").strip() or None,
                    is_time_based=is_time_based,
                    scores=(),
                    created_at=now,
                    updated_at=now,
                )
                result = await self._storage.save_game(game)
                if not result.success:
                    self._fail(result.error or "Failed to save game")
                    return None

                self._games.append(game)
            logger.info("created game", game_id=game.id, name=game.name, is_time_based=is_time_based)
            return game.id
        return None

    def add_player(self, name: str) -> str:
        """Add a player to the in-memory roster and return the new id."""
        player = Player(id=str(uuid4()), name=name.strip(), created_at=self._clock())
        self._players.append(player)
        logger.info("added player", player_id=player.id, name=player.name)
        self._notify()
        return player.id

    async def add_score(
        self,
        game_id: str,
        player_id: str,
        player_name: str,
        value: float,
        notes: str | None = None,
    ) -> bool:
        """Append a score to a game. Memory changes only after the write succeeds.

        A player id not yet in the roster joins it once the score is saved.
        """
        with self._operation("add_score"):
            if not math.isfinite(value):
                self._fail("Score must be a valid number")
                return False
            if value < 0:
                self._fail("Score cannot be negative")
                return False
            clean_notes = (notes or "").strip() or None
            if clean_notes is not None and len(clean_notes) > MAX_NOTES_LENGTH:
                self._fail(f"Notes must be at most {MAX_NOTES_LENGTH} characters")
                return False

            async with self._game_lock(game_id):
                game = self.get_game(game_id)
                if game is None:
                    self._fail(GAME_NOT_FOUND_MESSAGE)
                    return False

                now = self._clock()
                score = Score(
                    id=str(uuid4()),
                    player_id=player_id,
                    player_name=player_name,
                    value=value,
                    is_time=game.is_time_based,
                    achieved_at=now,
                    notes=clean_notes,
                )
                updated = game.with_score(score, now)

                result = await self._storage.save_game(updated)
                if not result.success:
                    self._fail(result.error or "Failed to save score")
                    return False

                index = next((i for i, g in enumerate(self._games) if g.id == game_id), None)
                if index is None:
                    # Dropped by a concurrent reload; the next load picks up the saved copy.
                    logger.warning("game replaced during add_score", game_id=game_id)
                else:
                    self._games[index] = updated
            if self.get_player(player_id) is None:
                self._players.append(Player(id=player_id, name=player_name, created_at=now))
            logger.info("added score", game_id=game_id, player_id=player_id, value=value)
            return True
        return False

    async def delete_game(self, game_id: str) -> bool:
        """Delete from the backend first; drop from memory only on success.

        Waits for any score write on the same game to finish.
        """
        with self._operation("delete_game"):
            async with self._game_lock(game_id):
                result = await self._storage.delete_game(game_id)
                if not result.success:
                    self._fail(result.error or "Failed to delete game")
                    return False

                self._games = [g for g in self._games if g.id != game_id]
                if self._current_game_id == game_id:
                    self._current_game_id = None
            self._game_locks.pop(game_id, None)
            logger.info("deleted game", game_id=game_id)
            return True
        return False

    def set_current_game(self, game_id: str | None) -> None:
        """Select a game by id. Unknown ids select nothing."""
        if game_id is not None and self.get_game(game_id) is None:
            game_id = None
        self._current_game_id = game_id
        self._notify()

    def get_scores(
        self,
        game_id: str,
        sort_order: SortOrder = SortOrder.BEST_FIRST,
        score_filter: ScoreFilter | None = None,
    ) -> list[Score]:
        game = self.get_game(game_id)
        if game is None:
            return []
        return select_scores(game, sort_order, score_filter)

    def get_best_score(self, game_id: str, player_id: str) -> Score | None:
        game = self.get_game(game_id)
        if game is None:
            return None
        return best_score(game, player_id)

    def get_leaderboard(self, game_id: str, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> list[LeaderboardEntry]:
        game = self.get_game(game_id)
        if game is None:
            return []
        return build_leaderboard(game, self._players, limit)

    async def import_backup(self, payload: str) -> bool:
        """Replace the backend's contents with ``payload`` and reload."""
        imported = False
        with self._operation("import_backup"):
            result = await self._storage.import_data(payload)
            if not result.success:
                self._fail(result.error or "Failed to import data")
                return False
            imported = True
        if not imported:
            return False
        self._current_game_id = None
        await self.load_games()
        return not self.has_error

    async def seed_sample_data(self) -> None:
        """Create the sample racing game with two players when the store is empty."""
        if self._games:
            return
        game_id = await self.create_game("Racing Game", "Best lap times", is_time_based=True)
        if game_id is None:
            return
        alice = self.add_player("Alice")
        bob = self.add_player("Bob")
        await self.add_score(game_id, alice, "Alice", 95.5, "Perfect run!")
        await self.add_score(game_id, bob, "Bob", 98.2, "Good attempt")
