from __future__ import annotations

import pytest

from core.backoff import Backoff


def test_doubles_until_capped() -> None:
    backoff = Backoff(2000, 240000)
    seen = []
    for _ in range(9):
        seen.append(backoff.value)
        backoff.advance()

    assert seen == [2000, 4000, 8000, 16000, 32000, 64000, 128000, 240000, 240000]


def test_reset_returns_to_start() -> None:
    backoff = Backoff(100, 1000)
    backoff.advance()
    backoff.advance()

    backoff.reset()

    assert backoff.value == 100


def test_force_to_only_raises() -> None:
    backoff = Backoff(2000, 240000)

    backoff.force_to(1000)
    assert backoff.value == 2000

    backoff.force_to(30000)
    assert backoff.value == 30000

    backoff.advance()
    assert backoff.value == 60000


@pytest.mark.parametrize("start,maximum", [(0, 10), (-5, 10), (20, 10)])
def test_rejects_invalid_bounds(start: int, maximum: int) -> None:
    with pytest.raises(ValueError):
        Backoff(start, maximum)
