"""Named routes and multi-route dispatch.

Named routes are handlers stored by ``(namespace, name)``. ``r.route``
runs one directly; ``r.multi_route`` matches the next path segment
against every name in a namespace with a single alternation regex.

The regex puts longer names first so ``"post"`` never shadows
``"posts"``, and ties sort by name so the order does not depend on
registration order.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from sprig.errors import UnknownRouteError
from sprig.routing.result import CONTINUE, Halted, Result

if TYPE_CHECKING:
    from sprig._internal.types import Block, RouteHandler
    from sprig.routing.tree import RoutingRequest


def build_route_regex(names: Iterable[str]) -> re.Pattern[str] | None:
    """Alternation over *names*, longest first. ``None`` when there are none."""
    ordered = sorted(set(names), key=lambda name: (-len(name), name))
    if not ordered:
        return None
    return re.compile("(" + "|".join(re.escape(name) for name in ordered) + ")")


@dataclass(frozen=True, slots=True)
class NamedRoutes:
    """Read-only named-route tables and their multi-route regexes."""

    routes: Mapping[str | None, Mapping[str, RouteHandler]]
    regexes: Mapping[str | None, re.Pattern[str]]

    @classmethod
    def build(
        cls,
        routes: Mapping[str | None, Mapping[str, RouteHandler]],
        regex_for: Callable[[str | None], re.Pattern[str] | None] | None = None,
    ) -> NamedRoutes:
        """Copy *routes* into read-only tables.

        *regex_for* supplies an already cached regex per namespace;
        without it each regex is built here.
        """
        frozen = {ns: MappingProxyType(dict(table)) for ns, table in routes.items() if table}
        regexes = {}
        for ns, table in frozen.items():
            regex = regex_for(ns) if regex_for is not None else build_route_regex(table)
            if regex is not None:
                regexes[ns] = regex
        return cls(routes=MappingProxyType(frozen), regexes=MappingProxyType(regexes))

    def names(self, namespace: str | None = None) -> tuple[str, ...]:
        return tuple(self.routes.get(namespace, ()))


def dispatch_named(r: RoutingRequest, name: str, namespace: str | None) -> Any:
    """Run a named route and return whatever its handler returned."""
    table = r.snapshot.named_routes.routes.get(namespace)
    handler = table.get(name) if table else None
    if handler is None:
        raise UnknownRouteError(name, namespace)
    return handler(r)


def dispatch_multi(r: RoutingRequest, namespace: str | None, fallback: Block | None) -> Result:
    """Match the next segment against the namespace's names and run that route."""
    regex = r.snapshot.named_routes.regexes.get(namespace)
    if regex is None:
        return CONTINUE

    def run(section: str) -> Any:
        value = dispatch_named(r, section, namespace)
        if fallback is None or isinstance(value, Halted):
            return value
        return fallback(section)

    return r.on(regex, run)
