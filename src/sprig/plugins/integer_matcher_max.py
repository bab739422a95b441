"""Reject integer segments above a maximum."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from sprig.app import App

# Largest value of a signed 64-bit integer.
DEFAULT_MAX = 2**63 - 1


@dataclass(frozen=True, slots=True)
class IntegerMatcherMax:
    """Override the ``int`` class matcher so values above *maximum* do not match.

    A rejected segment is treated exactly like a non-matching one: the
    path is left untouched and the next sibling is tried.
    """

    name: ClassVar[str] = "integer_matcher_max"

    maximum: int = DEFAULT_MAX

    def install(self, app: App) -> None:
        app.class_matcher(int, int, self.check)

    def check(self, value: int) -> int | None:
        return value if value <= self.maximum else None
