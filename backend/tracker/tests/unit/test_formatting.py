import pytest

from tracker.games.formatting import format_score, rank_label


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (45.5, "45.50s"),
        (0, "0.00s"),
        (65.3, "1:05.30"),
        (95.5, "1:35.50"),
        (600, "10:00.00"),
    ],
)
def test_time_based(value, expected):
    assert format_score(value, is_time_based=True) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1500, "1,500"),
        (1500.0, "1,500"),
        (999_999_999, "999,999,999"),
        (12.5, "12.5"),
        (0, "0"),
    ],
)
def test_score_based(value, expected):
    assert format_score(value, is_time_based=False) == expected


@pytest.mark.parametrize(
    ("position", "expected"),
    [
        (1, "1st"),
        (2, "2nd"),
        (3, "3rd"),
        (4, "4th"),
        (11, "11th"),
        (12, "12th"),
        (13, "13th"),
        (21, "21st"),
        (22, "22nd"),
        (101, "101st"),
        (111, "111th"),
    ],
)
def test_rank_label(position, expected):
    assert rank_label(position) == expected
