"""Capped exponential backoff used between stream reconnection attempts."""

from __future__ import annotations


class Backoff:
    """Monotone, capped exponential delay schedule.

    The delay starts at ``start_value`` and doubles on every ``advance()``
    until it reaches ``max_value``. ``reset()`` goes back to the start after a
    successful connection, and ``force_to()`` raises the delay to a minimum
    (used when the upstream asks us to cool down longer than the natural
    schedule would at that point).
    """

    def __init__(self, start_value: int = 2000, max_value: int = 240000) -> None:
        if start_value <= 0:
            raise ValueError("start_value must be positive")
        if max_value < start_value:
            raise ValueError("max_value must be >= start_value")
        self._start_value = start_value
        self._max_value = max_value
        self._value = start_value

    @property
    def value(self) -> int:
        """Current delay."""

        return self._value

    @property
    def start_value(self) -> int:
        return self._start_value

    @property
    def max_value(self) -> int:
        return self._max_value

    def advance(self) -> None:
        self._value = min(self._value * 2, self._max_value)

    def reset(self) -> None:
        self._value = self._start_value

    def force_to(self, value: int) -> None:
        """Raise the current delay to ``value``; smaller values are ignored."""

        if value > self._value:
            self._value = value
