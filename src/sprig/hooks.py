"""Ordered hook chains, compiled into plain callables at freeze time.

Plugins register before, after, and match hooks with an integer
priority. Lower priorities run first; equal priorities keep
registration order. ``HookChain.build()`` composes each kind into one
function so the request path pays a single call per kind, and an
empty kind costs a no-op.

- **before** hooks run ahead of the main route. A hook that returns
  ``Halted`` stops the chain and the main route is skipped.
- **after** hooks see the finished response and mutate it in place.
- **match** hooks observe every committed match with the matchers and
  the captures each one produced.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from sprig.routing.result import Halted

if TYPE_CHECKING:
    from sprig._internal.types import AfterHook, BeforeHook, MatchHook
    from sprig.http.response import Response
    from sprig.routing.tree import RoutingRequest

logger = logging.getLogger("sprig.plugins")

DEFAULT_PRIORITY = 50

type HookKind = Literal["before", "after", "match"]


@dataclass(frozen=True, slots=True)
class HookEntry:
    priority: int
    order: int
    func: Callable[..., Any]


# -- No-op fallbacks --


def _no_before(r: RoutingRequest) -> None:
    return None


def _no_after(r: RoutingRequest, response: Response) -> None:
    return None


def _no_match(r: RoutingRequest, records: Sequence[Any]) -> None:
    return None


# -- Composition --


def _compose_before(hooks: tuple[BeforeHook, ...]) -> BeforeHook:
    if not hooks:
        return _no_before
    if len(hooks) == 1:
        return hooks[0]

    def run_before(r: RoutingRequest) -> Halted | None:
        for hook in hooks:
            result = hook(r)
            if isinstance(result, Halted):
                return result
        return None

    return run_before


def _compose_after(hooks: tuple[AfterHook, ...]) -> AfterHook:
    if not hooks:
        return _no_after
    if len(hooks) == 1:
        return hooks[0]

    def run_after(r: RoutingRequest, response: Response) -> None:
        for hook in hooks:
            hook(r, response)

    return run_after


def _compose_after_safe(hooks: tuple[AfterHook, ...]) -> AfterHook:
    """After hooks for the error pass: failures are logged, never raised."""
    if not hooks:
        return _no_after

    def run_after_safe(r: RoutingRequest, response: Response) -> None:
        for hook in hooks:
            try:
                hook(r, response)
            except Exception:
                logger.exception("after hook %r failed while handling an error", hook)

    return run_after_safe


def _compose_match(hooks: tuple[MatchHook, ...]) -> MatchHook:
    if not hooks:
        return _no_match
    if len(hooks) == 1:
        return hooks[0]

    def run_match(r: RoutingRequest, records: Sequence[Any]) -> None:
        for hook in hooks:
            hook(r, records)

    return run_match


@dataclass(frozen=True, slots=True)
class CompiledHooks:
    """The composed hook functions of one snapshot."""

    before: BeforeHook
    after: AfterHook
    after_safe: AfterHook
    match: MatchHook
    counts: tuple[int, int, int] = (0, 0, 0)


# -- Builder --


class HookChain:
    """Mutable hook registry. Inherits the entries of a parent chain.

    Registering the same function twice at the same priority is a no-op,
    so plugins can be reinstalled safely.
    """

    __slots__ = ("_entries", "_order", "parent")

    def __init__(self, parent: HookChain | None = None) -> None:
        self.parent = parent
        self._entries: dict[str, list[HookEntry]] = {"before": [], "after": [], "match": []}
        self._order = itertools.count()

    def add(self, kind: HookKind, func: Callable[..., Any], priority: int = DEFAULT_PRIORITY) -> None:
        entries = self._entries[kind]
        if any(e.func is func and e.priority == priority for e in entries):
            return
        entries.append(HookEntry(priority, next(self._order), func))

    def entries(self, kind: HookKind) -> list[HookEntry]:
        """All entries of *kind*, parent first, sorted by priority."""
        inherited = self.parent.entries(kind) if self.parent is not None else []
        own = sorted(self._entries[kind], key=lambda e: (e.priority, e.order))
        # Stable sort: parent hooks stay ahead of child hooks within a priority.
        return sorted([*inherited, *own], key=lambda e: e.priority)

    def functions(self, kind: HookKind) -> tuple[Callable[..., Any], ...]:
        return tuple(e.func for e in self.entries(kind))

    def build(self) -> CompiledHooks:
        before = self.functions("before")
        after = self.functions("after")
        match = self.functions("match")
        return CompiledHooks(
            before=_compose_before(before),
            after=_compose_after(after),
            after_safe=_compose_after_safe(after),
            match=_compose_match(match),
            counts=(len(before), len(after), len(match)),
        )
