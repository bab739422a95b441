"""Path cursor — the remaining request path plus the capture list.

Every matcher consumes from a ``PathCursor``. Strings are immutable, so
a snapshot is just the current remaining path and the captures length;
restoring one undoes any partial progress of a failed match.
"""

import re
from collections.abc import Callable
from typing import Any, NamedTuple


class Snapshot(NamedTuple):
    remaining: str
    captures_length: int


class PathCursor:
    """Tracks the unmatched path suffix and the captures of the current match.

    ``remaining`` always starts with ``/`` or is empty. ``matched`` is
    the prefix consumed so far and doubles as the default namespace for
    hash-dispatch tables.
    """

    __slots__ = ("captures", "path", "remaining")

    def __init__(self, path: str) -> None:
        self.path = path
        self.remaining = path
        self.captures: list[Any] = []

    def __repr__(self) -> str:
        return f"PathCursor(matched={self.matched!r}, remaining={self.remaining!r})"

    @property
    def matched(self) -> str:
        return self.path[: len(self.path) - len(self.remaining)]

    # -- Rollback --

    def snapshot(self) -> Snapshot:
        return Snapshot(self.remaining, len(self.captures))

    def restore(self, snap: Snapshot) -> None:
        self.remaining = snap.remaining
        del self.captures[snap.captures_length :]

    # -- Consumption --

    def try_consume_literal(self, segment: str) -> bool:
        """Consume ``/segment`` when it is followed by ``/`` or the end.

        Compares characters directly instead of building a regex.
        """
        rp = self.remaining
        end = len(segment) + 1
        if not rp.startswith("/") or rp[1:end] != segment:
            return False
        if len(rp) > end and rp[end] != "/":
            return False
        self.remaining = rp[end:]
        return True

    def try_consume_segment(
        self,
        pattern: re.Pattern[str],
        convert: Callable[..., Any] | None = None,
    ) -> bool:
        """Match *pattern* at the start of the remaining path and consume it.

        *pattern* must already be anchored (it is used with ``match``).
        Its groups are passed to *convert*; a converter that returns
        ``None`` or ``False`` rejects the match and nothing is consumed.
        A converter may return a tuple to push several captures.
        """
        m = pattern.match(self.remaining)
        if m is None:
            return False
        groups = m.groups()
        if convert is not None:
            value = convert(*groups)
            if value is None or value is False:
                return False
            if isinstance(value, tuple):
                self.captures.extend(value)
            else:
                self.captures.append(value)
        else:
            self.captures.extend(groups)
        self.remaining = self.remaining[m.end() :]
        return True

    def try_consume_whole(
        self,
        pattern: re.Pattern[str],
        convert: Callable[..., Any] | None = None,
    ) -> bool:
        """Like ``try_consume_segment`` but the match must leave nothing behind."""
        snap = self.snapshot()
        if not self.try_consume_segment(pattern, convert):
            return False
        if self.remaining:
            self.restore(snap)
            return False
        return True

    def consume_all(self) -> str:
        """Consume everything that is left and return it."""
        rest = self.remaining
        self.remaining = ""
        return rest

    def push(self, *values: Any) -> None:
        self.captures.extend(values)
