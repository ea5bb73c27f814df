from __future__ import annotations

import math

import pytest

from hireflow.core.progress import compute_next, locate
from hireflow.core.ranker import clamp_count


def test_next_follows_last_reviewed() -> None:
    assert compute_next([10, 11, 12], 11) == 12


def test_next_is_first_without_progress() -> None:
    assert compute_next([10, 11, 12], None) == 10


def test_next_is_first_when_last_reviewed_left_the_queue() -> None:
    assert compute_next([10, 11, 12], 99) == 10


def test_next_wraps_to_first_after_final_application() -> None:
    assert compute_next([10, 11, 12], 12) == 10


def test_next_on_empty_queue() -> None:
    assert compute_next([], None) is None
    assert compute_next([], 5) is None


def test_locate() -> None:
    assert locate([3, 4], 4) == 1
    assert locate([3, 4], 5) == -1
    assert locate([3, 4], None) == -1


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, 3),
        ("5", 3),
        (True, 3),
        (math.nan, 3),
        (math.inf, 3),
        (0, 1),
        (-4, 1),
        (2, 2),
        (2.4, 2),
        (50, 20),
    ],
)
def test_clamp_count(raw, expected) -> None:
    assert clamp_count(raw) == expected


def test_clamp_count_honours_configured_bounds() -> None:
    assert clamp_count(None, default=5, maximum=8) == 5
    assert clamp_count(12, default=5, maximum=8) == 8
