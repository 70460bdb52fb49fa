from __future__ import annotations


class RequestSequencer:
    """Issues monotonically increasing request tokens.

    Only the most recently issued token is authoritative; a response whose token
    has been superseded must be dropped by the caller instead of applied.
    """

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    def invalidate(self) -> None:
        self._latest += 1
