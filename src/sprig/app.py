"""Sprig application class.

Mutable during setup (main route, matchers, hash and named routes,
hooks, plugins). Frozen into an ``AppSnapshot`` when ``app.freeze()``
is called or the first request arrives.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable, Iterator
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final

from sprig._internal.asgi import Receive, Scope, Send
from sprig.config import AppConfig
from sprig.errors import ConfigurationError, FrozenAppError, UnknownMatcherError
from sprig.hooks import DEFAULT_PRIORITY, HookChain
from sprig.http.request import Request
from sprig.http.response import Response
from sprig.routing.hash_routes import (
    Autoload,
    HashRoutes,
    HashTables,
    branch_key,
    path_key,
)
from sprig.routing.matchers import (
    BUILTIN_CLASS_MATCHERS,
    BUILTIN_HASH_MATCHERS,
    BUILTIN_SYMBOL_MATCHERS,
    HashMatcher,
    MatcherEntry,
    MatcherRegistry,
    Symbol,
)
from sprig.routing.named import NamedRoutes, build_route_regex
from sprig.routing.tree import RoutingRequest
from sprig.server import handler as server_handler
from sprig.snapshot import AppSnapshot, ErrorHandlerSpec, RequestMethod

if TYPE_CHECKING:
    from sprig._internal.types import (
        AfterHook,
        BeforeHook,
        Converter,
        MatchHook,
        ResultWriter,
        RouteHandler,
    )
    from sprig.plugins import Plugin


logger = logging.getLogger("sprig.server")


class _Decorate:
    """Marks a registration call used as a decorator."""

    def __repr__(self) -> str:
        return "<decorate>"


_DECORATE: Final = _Decorate()

# Stored in a child's named-route table to hide a route inherited from a parent.
_REMOVED: Final = object()


def _default_main(r: RoutingRequest) -> Any:
    return r.hash_routes("")


class App:
    """The sprig application.

    Mutable during setup. ``freeze()`` compiles every table into an
    immutable ``AppSnapshot`` that concurrent requests share without
    locking.

    An app may extend another one::

        base = App()
        base.plugin(Json())

        admin = App(parent=base)

    The child reads the parent's registrations and overlays its own. The
    parent is never modified by the child.

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the snapshot, even when several ASGI workers
        call ``__call__()`` on their first request.
    """

    __slots__ = (
        "_class_matchers",
        "_error_handler",
        "_freeze_lock",
        "_frozen",
        "_hash_branches",
        "_hash_matchers",
        "_hash_paths",
        "_hooks",
        "_main",
        "_named_regex_cache",
        "_named_routes",
        "_plugins",
        "_request_methods",
        "_result_writers",
        "_revision",
        # Compiled state (populated by freeze or rebuilt in dev mode)
        "_snapshot",
        "_snapshot_revision",
        "_symbol_matchers",
        "_verb_aliases",
        "config",
        "parent",
    )

    def __init__(self, config: AppConfig | None = None, *, parent: App | None = None) -> None:
        if config is None:
            config = parent.config if parent is not None else AppConfig()
        self.config: AppConfig = config
        self.parent: App | None = parent
        self._main: RouteHandler | None = None
        self._class_matchers: dict[type, MatcherEntry] = {}
        self._symbol_matchers: dict[str, MatcherEntry] = {}
        self._hash_matchers: dict[str, HashMatcher] = {}
        self._hash_branches: dict[str, dict[str, RouteHandler]] = {}
        self._hash_paths: dict[str, dict[str, RouteHandler]] = {}
        self._named_routes: dict[str | None, dict[str, RouteHandler]] = {}
        self._named_regex_cache: dict[str | None, tuple[tuple[int, ...], re.Pattern[str] | None]] = {}
        self._hooks = HookChain(parent._hooks if parent is not None else None)
        self._plugins: dict[str, Plugin] = {}
        self._result_writers: dict[type, ResultWriter] = {}
        self._request_methods: dict[str, RequestMethod] = {}
        self._verb_aliases: dict[str, set[str]] = {}
        self._error_handler: ErrorHandlerSpec | None = None
        self._revision = 0
        self._frozen = False
        self._freeze_lock = threading.Lock()
        self._snapshot: AppSnapshot | None = None
        self._snapshot_revision: tuple[int, ...] = ()

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "building"
        return f"<App {state} plugins={sorted(self._merged('_plugins'))}>"

    # -- Main route --

    def route(self, handler: RouteHandler) -> RouteHandler:
        """Register the main route block, called with the routing request.

        Without one, the app dispatches through ``r.hash_routes("")``.
        """
        self._touch("the main route")
        self._main = handler
        return handler

    # -- Hash routes --

    def hash_branch(self, *args: str) -> Callable[[RouteHandler], RouteHandler]:
        """Register a branch handler: ``hash_branch(segment)`` or ``hash_branch(namespace, segment)``."""
        namespace, segment = self._namespace_args("hash_branch", args)
        key = branch_key(segment)

        def decorator(func: RouteHandler) -> RouteHandler:
            self._touch("hash branches")
            self._hash_branches.setdefault(namespace, {})[key] = func
            return func

        return decorator

    def hash_path(self, *args: str | bool) -> Callable[[RouteHandler], RouteHandler]:
        """Register a path handler: ``hash_path(path)`` or ``hash_path(namespace, path)``."""
        namespace, path = self._namespace_args("hash_path", args)
        key = path_key(path)

        def decorator(func: RouteHandler) -> RouteHandler:
            self._touch("hash paths")
            self._hash_paths.setdefault(namespace, {})[key] = func
            return func

        return decorator

    def autoload_hash_branch(self, *args: str) -> None:
        """Register a branch whose handler is imported from ``"module:attr"`` on first use.

        ``autoload_hash_branch(segment, target)`` or
        ``autoload_hash_branch(namespace, segment, target)``.
        """
        if len(args) not in (2, 3):
            msg = "autoload_hash_branch() takes ([namespace,] segment, target)"
            raise TypeError(msg)
        *head, target = args
        self.hash_branch(*head)(Autoload(target))

    def hash_routes(self, namespace: str = "") -> HashRoutes:
        """Declarative registration for one namespace (use as a context manager)."""
        return HashRoutes(self, namespace)

    @staticmethod
    def _namespace_args(method: str, args: tuple[Any, ...]) -> tuple[str, Any]:
        if len(args) == 1:
            return "", args[0]
        if len(args) == 2:
            return args[0], args[1]
        msg = f"{method}() takes ([namespace,] key)"
        raise TypeError(msg)

    # -- Named routes --

    def named_route(
        self,
        name: str,
        handler: RouteHandler | None | _Decorate = _DECORATE,
        *,
        namespace: str | None = None,
    ) -> Any:
        """Register a named route. Used as a decorator or called with the handler.

        Registering an existing name replaces it; passing ``None`` as the
        handler removes it.
        """
        if handler is _DECORATE:

            def decorator(func: RouteHandler) -> RouteHandler:
                self._set_named_route(name, func, namespace)
                return func

            return decorator
        self._set_named_route(name, handler, namespace)  # type: ignore[arg-type]
        return handler

    def _set_named_route(self, name: str, handler: RouteHandler | None, namespace: str | None) -> None:
        self._touch("named routes")
        table = self._named_routes.setdefault(namespace, {})
        if handler is not None:
            table[name] = handler
        elif self.parent is not None and name in self.parent.named_routes(namespace):
            table[name] = _REMOVED
        else:
            table.pop(name, None)
        self._named_regex_cache.pop(namespace, None)

    def named_routes(self, namespace: str | None = None) -> dict[str, RouteHandler]:
        """Named routes visible in *namespace*, inherited ones included unless removed here."""
        merged: dict[str, Any] = {}
        for app in self._lineage():
            merged.update(app._named_routes.get(namespace, {}))
        return {name: handler for name, handler in merged.items() if handler is not _REMOVED}

    def named_route_regex(self, namespace: str | None = None) -> re.Pattern[str] | None:
        """Alternation regex used by ``r.multi_route`` for *namespace*.

        Cached per namespace and rebuilt after a route there changes.
        Fixed once the app is frozen.
        """
        if self._frozen and self._snapshot is not None:
            return self._snapshot.named_routes.regexes.get(namespace)
        key = self._revision_key()
        cached = self._named_regex_cache.get(namespace)
        if cached is not None and cached[0] == key:
            return cached[1]
        regex = build_route_regex(self.named_routes(namespace))
        self._named_regex_cache[namespace] = (key, regex)
        return regex

    # -- Matchers --

    def class_matcher(
        self,
        cls: type,
        pattern: str | re.Pattern[str] | type | Symbol,
        convert: Converter | None = None,
    ) -> None:
        """Register how *cls* matches a path segment.

        *pattern* is a regex (its groups feed *convert*) or an already
        registered class or symbol whose converted value feeds *convert*.
        A converter returning ``None`` or ``False`` rejects the segment.
        """
        entry = self._entry_for(pattern, convert)
        self._touch("class matchers")
        self._class_matchers[cls] = entry

    def symbol_matcher(
        self,
        name: str | Symbol,
        pattern: str | re.Pattern[str] | type | Symbol,
        convert: Converter | None = None,
    ) -> None:
        """Register a symbol matcher, used as ``sym.<name>`` in routes."""
        key = name.name if isinstance(name, Symbol) else name
        entry = self._entry_for(pattern, convert)
        self._touch("symbol matchers")
        self._symbol_matchers[key] = entry

    def hash_matcher(self, key: str, func: HashMatcher | None = None) -> Any:
        """Register a ``{key: value}`` matcher, called as ``func(r, value)``.

        Return true to match; push captures with ``r.cursor.push``.
        """
        if func is None:

            def decorator(fn: HashMatcher) -> HashMatcher:
                self.hash_matcher(key, fn)
                return fn

            return decorator
        self._touch("hash matchers")
        self._hash_matchers[key] = func
        return func

    def _entry_for(
        self,
        pattern: str | re.Pattern[str] | type | Symbol,
        convert: Converter | None,
    ) -> MatcherEntry:
        if isinstance(pattern, type):
            base = self._merged_classes().get(pattern)
            if base is None:
                msg = f"no class matcher registered for {pattern.__qualname__}"
                raise UnknownMatcherError(msg)
            return base.then(convert)
        if isinstance(pattern, Symbol):
            base = self._merged_symbols().get(pattern.name)
            if base is None:
                msg = f"no symbol matcher registered for {pattern!r}"
                raise UnknownMatcherError(msg)
            return base.then(convert)
        if isinstance(pattern, (str, re.Pattern)):
            return MatcherEntry.segment(pattern, convert)
        msg = f"matcher pattern must be a regex, class, or symbol, got {pattern!r}"
        raise ConfigurationError(msg)

    def _merged_classes(self) -> dict[type, MatcherEntry]:
        return {**BUILTIN_CLASS_MATCHERS, **self._merged("_class_matchers")}

    def _merged_symbols(self) -> dict[str, MatcherEntry]:
        return {**BUILTIN_SYMBOL_MATCHERS, **self._merged("_symbol_matchers")}

    # -- Hooks --

    def before(self, hook: BeforeHook | None = None, *, priority: int = DEFAULT_PRIORITY) -> Any:
        """Register a before hook. Return ``Halted`` to skip the main route."""
        return self._add_hook("before", hook, priority)

    def after(self, hook: AfterHook | None = None, *, priority: int = DEFAULT_PRIORITY) -> Any:
        """Register an after hook, called with ``(r, response)`` once the response is finished."""
        return self._add_hook("after", hook, priority)

    def on_match(self, hook: MatchHook | None = None) -> Any:
        """Register a hook called with the matchers and captures of every committed match."""
        return self._add_hook("match", hook, DEFAULT_PRIORITY)

    def _add_hook(self, kind: Any, hook: Callable[..., Any] | None, priority: int) -> Any:
        if hook is None:

            def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
                self._add_hook(kind, func, priority)
                return func

            return decorator
        self._touch(f"{kind} hooks")
        self._hooks.add(kind, hook, priority)
        return hook

    # -- Extension points --

    def plugin(self, plugin: Plugin) -> App:
        """Install *plugin* once.

        Installing an equal plugin again is a no-op; the same plugin
        with different options raises ``ConfigurationError``.
        """
        existing = self._merged("_plugins").get(plugin.name)
        if existing is not None:
            if existing == plugin:
                return self
            msg = f"plugin {plugin.name!r} is already installed with different options: {existing!r}"
            raise ConfigurationError(msg)
        self._touch("plugins")
        self._plugins[plugin.name] = plugin
        try:
            plugin.install(self)
        except BaseException:
            del self._plugins[plugin.name]
            raise
        logger.debug("Installed plugin %s", plugin.name)
        return self

    def has_plugin(self, name: str) -> bool:
        return name in self._merged("_plugins")

    def request_method(self, name: str, func: Callable[..., Any], *, property: bool = False) -> None:
        """Expose ``func(r, ...)`` as ``r.<name>(...)``, or ``r.<name>`` when *property*."""
        if hasattr(RoutingRequest, name):
            msg = f"request method {name!r} would shadow a built-in RoutingRequest attribute"
            raise ConfigurationError(msg)
        self._touch("request methods")
        self._request_methods[name] = RequestMethod(func, is_property=property)

    def has_request_method(self, name: str) -> bool:
        return name in self._merged("_request_methods")

    def result_handler(self, type_: type, writer: ResultWriter) -> None:
        """Write block results of *type_* (and subclasses) with ``writer(r, value)``."""
        self._touch("result handlers")
        self._result_writers[type_] = writer

    def verb_alias(self, method: str, alias: str) -> None:
        """Let requests with method *alias* match verb calls for *method*."""
        self._touch("verb aliases")
        self._verb_aliases.setdefault(method.upper(), set()).add(alias.upper())

    def error_handler(
        self,
        func: Callable[[RoutingRequest, Exception], Any],
        exceptions: tuple[type[BaseException], ...] = (Exception,),
    ) -> None:
        """Answer exceptions raised while routing. Usually set by the ``ErrorHandler`` plugin."""
        self._touch("the error handler")
        self._error_handler = ErrorHandlerSpec(func, exceptions)

    # -- Freeze --

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> App:
        """End the setup phase and compile the immutable snapshot."""
        self._ensure_frozen()
        return self

    @property
    def snapshot(self) -> AppSnapshot:
        """The runtime snapshot used to route requests.

        Frozen apps (and auto-freezing apps on first use) always return
        the same snapshot. With ``auto_freeze=False`` a new one is built
        whenever a registration changed since the last call.
        """
        if self._frozen or self.config.auto_freeze:
            self._ensure_frozen()
            assert self._snapshot is not None
            return self._snapshot
        key = self._revision_key()
        with self._freeze_lock:
            if self._snapshot is None or self._snapshot_revision != key:
                self._snapshot = self._build_snapshot(frozen=False)
                self._snapshot_revision = key
            return self._snapshot

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._snapshot = self._build_snapshot(frozen=True)
            self._snapshot_revision = self._revision_key()
            self._frozen = True

    def _build_snapshot(self, *, frozen: bool) -> AppSnapshot:
        """Compile the builder tables. With *frozen*, autoloads are resolved now."""
        registry = MatcherRegistry(
            classes=self._merged_classes(),
            symbols=self._merged_symbols(),
            hash_matchers={**BUILTIN_HASH_MATCHERS, **self._merged("_hash_matchers")},
        )
        hash_tables = HashTables.build(
            self._merged_tables("_hash_branches"),
            self._merged_tables("_hash_paths"),
            resolve=frozen,
        )
        named_routes = NamedRoutes.build(
            {ns: self.named_routes(ns) for ns in self._merged("_named_routes")},
            self.named_route_regex,
        )
        aliases: dict[str, set[str]] = {}
        for app in self._lineage():
            for method, names in app._verb_aliases.items():
                aliases.setdefault(method, set()).update(names)

        return AppSnapshot(
            config=self.config,
            main=self._inherited("_main") or _default_main,
            matchers=registry,
            hash_tables=hash_tables,
            named_routes=named_routes,
            hooks=self._hooks.build(),
            result_writers=MappingProxyType(self._merged("_result_writers")),
            request_methods=MappingProxyType(self._merged("_request_methods")),
            verb_aliases=MappingProxyType(
                {method: frozenset(names) for method, names in aliases.items()}
            ),
            error_handler=self._inherited("_error_handler"),
            plugins=tuple(self._merged("_plugins")),
            frozen=frozen,
        )

    def _touch(self, what: str) -> None:
        if self._frozen:
            raise FrozenAppError(what)
        self._revision += 1

    # -- Parent overlay --

    def _lineage(self) -> Iterator[App]:
        """This app's ancestors, root first, then the app itself."""
        chain: list[App] = []
        app: App | None = self
        while app is not None:
            chain.append(app)
            app = app.parent
        return reversed(chain)

    def _revision_key(self) -> tuple[int, ...]:
        return tuple(app._revision for app in self._lineage())

    def _merged(self, attr: str) -> dict[Any, Any]:
        merged: dict[Any, Any] = {}
        for app in self._lineage():
            merged.update(getattr(app, attr))
        return merged

    def _merged_tables(self, attr: str) -> dict[Any, dict[str, Any]]:
        merged: dict[Any, dict[str, Any]] = {}
        for app in self._lineage():
            for namespace, table in getattr(app, attr).items():
                merged.setdefault(namespace, {}).update(table)
        return merged

    def _inherited(self, attr: str) -> Any:
        app: App | None = self
        while app is not None:
            value = getattr(app, attr)
            if value is not None:
                return value
            app = app.parent
        return None

    # -- Serving --

    def dispatch(self, request: Request) -> Response:
        """Route *request* synchronously and return the finished response."""
        return server_handler.dispatch(self.snapshot, request)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        await server_handler.handle_request(scope, receive, send, snapshot=self.snapshot)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Freeze at startup so the first request does not pay for it."""
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    if self.config.auto_freeze:
                        self._ensure_frozen()
                    else:
                        _ = self.snapshot
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return
