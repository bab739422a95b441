"""Hash-dispatch tables — O(1) routing by namespace and segment.

Two tables, both keyed by namespace (the path matched so far):

- **branches** map the *next segment* (``"/users"``) to a handler. The
  segment is consumed and the handler runs with the rest of the path.
- **paths** map the *whole remaining path* (``"/users/list"``) to a
  handler. Nothing is left to match afterwards.

A successful lookup always commits, even when the handler writes
nothing. Handlers receive the routing request and return a block value.

``HashRoutes`` is the declarative front end::

    with app.hash_routes("") as routes:
        @routes.on("users")
        def users(r):
            return r.hash_routes("/users")

        @routes.get("about")
        def about(r):
            return "About"
"""

from __future__ import annotations

import importlib
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from sprig.errors import ConfigurationError
from sprig.routing.result import CONTINUE, Halted, Result

if TYPE_CHECKING:
    from sprig._internal.types import RouteHandler
    from sprig.app import App
    from sprig.routing.tree import RoutingRequest

logger = logging.getLogger("sprig.routing")

type Table = Mapping[str, Mapping[str, RouteHandler]]


def branch_key(segment: str) -> str:
    """``"users"`` -> ``"/users"``. Branch keys are always one segment."""
    segment = segment.strip("/")
    if not segment or "/" in segment:
        msg = f"hash branch segment must be a single path segment, got {segment!r}"
        raise ConfigurationError(msg)
    return "/" + segment


def path_key(path: str | bool) -> str:
    """Normalize a hash path. ``True`` and ``""`` mean the namespace root itself."""
    if path is True or path == "":
        return ""
    if not isinstance(path, str):
        msg = f"hash path must be a string or True, got {path!r}"
        raise ConfigurationError(msg)
    return path if path.startswith("/") else "/" + path


# -- Autoload --


class Autoload:
    """A handler imported from ``"package.module:attribute"`` on first use.

    ``resolve()`` is thread-safe and idempotent; frozen apps resolve
    every autoload eagerly so no import happens while serving.
    """

    __slots__ = ("_handler", "_lock", "target")

    def __init__(self, target: str) -> None:
        module, sep, attr = target.partition(":")
        if not sep or not module or not attr:
            msg = f"autoload target must look like 'package.module:attribute', got {target!r}"
            raise ConfigurationError(msg)
        self.target = target
        self._handler: RouteHandler | None = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Autoload({self.target!r})"

    def resolve(self) -> RouteHandler:
        handler = self._handler
        if handler is not None:
            return handler
        with self._lock:
            if self._handler is None:
                module_name, _, attr = self.target.partition(":")
                logger.debug("autoloading hash handler %s", self.target)
                try:
                    module = importlib.import_module(module_name)
                    loaded = getattr(module, attr)
                except (ImportError, AttributeError) as exc:
                    msg = f"cannot autoload hash handler {self.target!r}: {exc}"
                    raise ConfigurationError(msg) from exc
                if not callable(loaded):
                    msg = f"autoloaded hash handler {self.target!r} is not callable"
                    raise ConfigurationError(msg)
                self._handler = loaded
            return self._handler

    def __call__(self, r: RoutingRequest) -> Any:
        return self.resolve()(r)


# -- Frozen tables --


@dataclass(frozen=True, slots=True)
class HashTables:
    """Read-only branch and path tables for one snapshot."""

    branches: Table
    paths: Table

    @classmethod
    def build(
        cls,
        branches: Mapping[str, Mapping[str, RouteHandler]],
        paths: Mapping[str, Mapping[str, RouteHandler]],
        *,
        resolve: bool = False,
    ) -> HashTables:
        """Copy builder tables into read-only mappings.

        With *resolve*, autoload entries are imported now and replaced by
        the loaded handler.
        """
        return cls(
            branches=_freeze_table(branches, resolve),
            paths=_freeze_table(paths, resolve),
        )

    @property
    def namespaces(self) -> frozenset[str]:
        return frozenset(self.branches) | frozenset(self.paths)


def _freeze_table(table: Mapping[str, Mapping[str, RouteHandler]], resolve: bool) -> Table:
    frozen: dict[str, Mapping[str, RouteHandler]] = {}
    for namespace, entries in table.items():
        frozen[namespace] = MappingProxyType({
            key: handler.resolve() if resolve and isinstance(handler, Autoload) else handler
            for key, handler in entries.items()
        })
    return MappingProxyType(frozen)


# -- Dispatch --


def dispatch_branches(r: RoutingRequest, namespace: str | None) -> Result:
    """Consume the next segment if the branch table for *namespace* has it."""
    ns = r.cursor.matched if namespace is None else namespace
    table = r.snapshot.hash_tables.branches.get(ns)
    if not table:
        return CONTINUE
    rp = r.cursor.remaining
    if not rp.startswith("/"):
        return CONTINUE
    end = rp.find("/", 1)
    segment = rp if end == -1 else rp[:end]
    handler = table.get(segment)
    if handler is None:
        return CONTINUE
    r.cursor.remaining = rp[len(segment) :]
    return r.commit(handler(r))


def dispatch_paths(r: RoutingRequest, namespace: str | None) -> Result:
    """Run the handler registered for the whole remaining path."""
    ns = r.cursor.matched if namespace is None else namespace
    table = r.snapshot.hash_tables.paths.get(ns)
    if not table:
        return CONTINUE
    handler = table.get(r.cursor.remaining)
    if handler is None:
        return CONTINUE
    r.cursor.remaining = ""
    return r.commit(handler(r))


# -- Declarative front end --


class HashRoutes:
    """Registers hash branches and paths under one namespace.

    Use as a context manager (``with app.hash_routes("/users") as routes:``)
    or keep the object around; each decorator registers immediately.
    Several verb decorators on the same path share one hash-path entry.
    """

    def __init__(self, app: App, namespace: str = "") -> None:
        self.app = app
        self.namespace = namespace
        self._verbs: dict[str, dict[str, RouteHandler]] = {}

    def __repr__(self) -> str:
        return f"HashRoutes(namespace={self.namespace!r})"

    def __enter__(self) -> HashRoutes:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def on(self, segment: str) -> Callable[[RouteHandler], RouteHandler]:
        """Register a branch handler for ``/segment``."""
        return self.app.hash_branch(self.namespace, segment)

    def is_(self, path: str | bool) -> Callable[[RouteHandler], RouteHandler]:
        """Register a path handler. ``True`` matches the namespace itself."""
        return self.app.hash_path(self.namespace, path)

    def get(self, path: str | bool) -> Callable[[RouteHandler], RouteHandler]:
        return self._verb("GET", path)

    def post(self, path: str | bool) -> Callable[[RouteHandler], RouteHandler]:
        return self._verb("POST", path)

    def put(self, path: str | bool) -> Callable[[RouteHandler], RouteHandler]:
        return self._verb("PUT", path)

    def patch(self, path: str | bool) -> Callable[[RouteHandler], RouteHandler]:
        return self._verb("PATCH", path)

    def delete(self, path: str | bool) -> Callable[[RouteHandler], RouteHandler]:
        return self._verb("DELETE", path)

    def head(self, path: str | bool) -> Callable[[RouteHandler], RouteHandler]:
        return self._verb("HEAD", path)

    def options(self, path: str | bool) -> Callable[[RouteHandler], RouteHandler]:
        return self._verb("OPTIONS", path)

    def view(self, path: str | bool, template: str) -> None:
        """Render *template* for GET requests to the path. Requires the ``Render`` plugin.

        Other methods on the path get the usual empty 404.
        """
        if not self.app.has_request_method("view"):
            msg = "hash route views need the Render plugin installed first"
            raise ConfigurationError(msg)

        def render_view(r: RoutingRequest) -> Any:
            return r.view(template)

        self._verb("GET", path)(render_view)

    def views(self, templates: Iterable[str]) -> None:
        """A view per template, at the template name without its extension.

        ``views(["about.html", "team/index.html"])`` serves ``/about`` and
        ``/team/index``.
        """
        for template in templates:
            self.view(template.removesuffix(PurePosixPath(template).suffix), template)

    def dispatch_from(
        self,
        namespace: str,
        segment: str,
        guard: RouteHandler | None = None,
    ) -> None:
        """Route ``/segment`` under *namespace* into this namespace's tables.

        *guard* runs first; if it halts, the hash routes are skipped.
        """
        target = self.namespace

        def dispatch(r: RoutingRequest) -> Result:
            if guard is not None:
                result = guard(r)
                if isinstance(result, Halted):
                    return result
            return r.hash_routes(target)

        self.app.hash_branch(namespace, segment)(dispatch)

    def _verb(self, method: str, path: str | bool) -> Callable[[RouteHandler], RouteHandler]:
        key = path_key(path)

        def decorator(handler: RouteHandler) -> RouteHandler:
            verbs = self._verbs.setdefault(key, {})
            verbs[method] = handler
            table = dict(verbs)

            def by_method(r: RoutingRequest) -> Any:
                for verb, func in table.items():
                    if r.is_method(verb):
                        return func(r)
                return CONTINUE

            by_method.__qualname__ = f"hash_path[{self.namespace}{key}]"
            self.app.hash_path(self.namespace, key)(by_method)
            return handler

        return decorator
