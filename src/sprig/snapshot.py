"""Immutable runtime view of an App.

``App`` is the mutable builder used during setup. Freezing it (or, in
development mode, every request) produces an ``AppSnapshot``: read-only
tables, a matcher registry, and composed hooks. Everything the routing
tree touches at request time lives here, so concurrent requests share
one snapshot without locks.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from sprig.config import AppConfig
from sprig.hooks import CompiledHooks
from sprig.routing.hash_routes import HashTables
from sprig.routing.matchers import MatcherRegistry
from sprig.routing.named import NamedRoutes

if TYPE_CHECKING:
    from sprig._internal.types import ResultWriter, RouteHandler


@dataclass(frozen=True, slots=True)
class RequestMethod:
    """A plugin-provided method (or property) of the routing request."""

    func: Any
    is_property: bool = False


@dataclass(frozen=True, slots=True)
class ErrorHandlerSpec:
    """What the error-handling pass catches and the handler that answers it."""

    func: Any
    exceptions: tuple[type[BaseException], ...] = (Exception,)


@dataclass(frozen=True, slots=True)
class AppSnapshot:
    """Everything needed to route a request, frozen."""

    config: AppConfig
    main: RouteHandler
    matchers: MatcherRegistry
    hash_tables: HashTables
    named_routes: NamedRoutes
    hooks: CompiledHooks
    result_writers: Mapping[type, ResultWriter] = field(default_factory=lambda: MappingProxyType({}))
    request_methods: Mapping[str, RequestMethod] = field(default_factory=lambda: MappingProxyType({}))
    verb_aliases: Mapping[str, frozenset[str]] = field(default_factory=lambda: MappingProxyType({}))
    error_handler: ErrorHandlerSpec | None = None
    plugins: tuple[str, ...] = ()
    frozen: bool = True

    def result_writer(self, value: Any) -> ResultWriter | None:
        """Find the writer for *value*, walking its class hierarchy."""
        writers = self.result_writers
        if not writers:
            return None
        for klass in type(value).__mro__:
            writer = writers.get(klass)
            if writer is not None:
                return writer
        return None
