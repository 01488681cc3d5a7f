from tracker.views.game_handlers import (
    create_game as create_game,
)
from tracker.views.game_handlers import (
    delete_game as delete_game,
)
from tracker.views.game_handlers import (
    get_current_game as get_current_game,
)
from tracker.views.game_handlers import (
    get_game as get_game,
)
from tracker.views.game_handlers import (
    list_games as list_games,
)
from tracker.views.game_handlers import (
    select_current_game as select_current_game,
)
from tracker.views.player_handlers import add_player as add_player
from tracker.views.player_handlers import list_players as list_players
from tracker.views.score_handlers import add_score as add_score
from tracker.views.score_handlers import get_leaderboard as get_leaderboard
from tracker.views.score_handlers import list_scores as list_scores
from tracker.views.storage_handlers import export_data as export_data
from tracker.views.storage_handlers import import_data as import_data
from tracker.views.storage_handlers import storage_status as storage_status
