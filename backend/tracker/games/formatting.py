"""Display formatting for score values and leaderboard positions."""

SECONDS_PER_MINUTE = 60


def format_score(value: float, *, is_time_based: bool) -> str:
    """Format a score for display.

    Time-based values are seconds: '1:05.30' above a minute, '45.50s' below.
    Score-based values use thousands separators ('1,500', '12.5').
    """
    if is_time_based:
        minutes = int(value // SECONDS_PER_MINUTE)
        seconds = f"{value % SECONDS_PER_MINUTE:.2f}"
        if minutes > 0:
            return f"{minutes}:{seconds.zfill(5)}"
        return f"{seconds}s"
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,}"


def rank_suffix(position: int) -> str:
    if 11 <= position % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(position % 10, "th")


def rank_label(position: int) -> str:
    """Ordinal label for a 1-based position (1st, 2nd, 3rd, 11th, 21st)."""
    return f"{position}{rank_suffix(position)}"
