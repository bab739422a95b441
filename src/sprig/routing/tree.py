"""The routing tree — ``on``, ``is_``, verb methods, and commit semantics.

A ``RoutingRequest`` wraps one inbound request. Route blocks call its
dispatch methods; each returns a ``Result``::

    @app.route
    def routes(r):
        return (
            r.root(lambda: "home")
            or r.on("users", int, lambda user_id: (
                r.get(lambda: f"user {user_id}")
                or r.post(lambda: update(user_id))
            ))
        )

Once every matcher of an ``on`` call succeeds the call is committed: it
returns ``Halted`` whatever the block produced, so no sibling is tried.
A block that writes nothing leaves an empty body, which finishes as 404.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from functools import partial
from typing import TYPE_CHECKING, Any

from sprig.errors import ConfigurationError, UnsupportedResultError
from sprig.http.response import Response
from sprig.routing.cursor import PathCursor
from sprig.routing.hash_routes import dispatch_branches, dispatch_paths
from sprig.routing.matchers import TERMINAL, Matcher
from sprig.routing.named import dispatch_multi, dispatch_named
from sprig.routing.result import CONTINUE, Continue, Halted, Result

if TYPE_CHECKING:
    from sprig._internal.types import Block
    from sprig.http.request import Request
    from sprig.snapshot import AppSnapshot

logger = logging.getLogger("sprig.routing")

type MatchRecord = tuple[Matcher, tuple[Any, ...]]


def _split_block(args: tuple[Any, ...], method: str) -> tuple[tuple[Any, ...], Block]:
    """Separate trailing block from the matcher arguments."""
    if not args:
        msg = f"r.{method}() requires a block as its last argument"
        raise TypeError(msg)
    *matchers, block = args
    if isinstance(block, type) or not callable(block):
        msg = f"r.{method}() requires a block as its last argument, got {block!r}"
        raise TypeError(msg)
    return tuple(matchers), block


class RoutingRequest:
    """Per-request routing state: cursor, response, and dispatch methods.

    Owned by exactly one request; never shared between threads.
    Plugins add methods through ``App.request_method``; those resolve
    through ``__getattr__`` against the snapshot's method table.
    """

    __slots__ = ("_params", "cursor", "request", "response", "snapshot", "state")

    def __init__(self, snapshot: AppSnapshot, request: Request) -> None:
        self.snapshot = snapshot
        self.request = request
        self.response = Response()
        self.cursor = PathCursor(request.path)
        self._params: dict[str, Any] | None = None
        # Scratch space for plugins (session dict, timers, ...)
        self.state: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"<RoutingRequest {self.method} {self.request.path!r} remaining={self.remaining_path!r}>"

    def __getattr__(self, name: str) -> Any:
        # Only reached for names not set on the instance; slots still
        # unset during construction must not recurse into the snapshot.
        if name.startswith("_") or name in RoutingRequest.__slots__:
            raise AttributeError(name)
        try:
            method = self.snapshot.request_methods[name]
        except KeyError:
            msg = f"{type(self).__name__!r} has no attribute {name!r}"
            raise AttributeError(msg) from None
        if method.is_property:
            return method.func(self)
        return partial(method.func, self)

    # -- Request data --

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def headers(self) -> Mapping[str, str]:
        return self.request.headers

    @property
    def params(self) -> dict[str, Any]:
        """Request parameters, copied on first use so plugins may add to them."""
        if self._params is None:
            self._params = dict(self.request.params)
        return self._params

    @property
    def remaining_path(self) -> str:
        return self.cursor.remaining

    @property
    def matched_path(self) -> str:
        return self.cursor.matched

    @property
    def captures(self) -> list[Any]:
        return self.cursor.captures

    def is_method(self, method: str) -> bool:
        """Whether the request method is *method* or one of its aliases."""
        actual = self.request.method
        return actual == method or actual in self.snapshot.verb_aliases.get(method, ())

    @property
    def is_get(self) -> bool:
        return self.is_method("GET")

    # -- Matching --

    def match_all(self, matchers: tuple[Any, ...], *, terminal: bool = False) -> bool:
        """Match every raw matcher left to right, as one atomic unit.

        On failure the cursor (remaining path and captures) is restored.
        """
        return self._match_chain(matchers, terminal) is not None

    def _match_chain(
        self,
        matchers: tuple[Any, ...],
        terminal: bool,
    ) -> list[MatchRecord] | None:
        registry = self.snapshot.matchers
        cursor = self.cursor
        snap = cursor.snapshot()
        records: list[MatchRecord] = []
        compiled = [registry.compile(value) for value in matchers]

        # A single terminal matcher can use its end-anchored pattern directly.
        if terminal and len(compiled) == 1 and hasattr(compiled[0], "match_whole"):
            before = len(cursor.captures)
            if not compiled[0].match_whole(self):  # type: ignore[attr-defined]
                cursor.restore(snap)
                return None
            return [(compiled[0], tuple(cursor.captures[before:]))]

        for matcher in compiled:
            before = len(cursor.captures)
            if not matcher.match(self):
                cursor.restore(snap)
                return None
            records.append((matcher, tuple(cursor.captures[before:])))
        if terminal and not TERMINAL.match(self):
            cursor.restore(snap)
            return None
        return records

    def _if_match(
        self,
        matchers: tuple[Any, ...],
        block: Block,
        *,
        terminal: bool = False,
    ) -> Result:
        cursor = self.cursor
        saved_remaining = cursor.remaining
        saved_captures = cursor.captures
        cursor.captures = []
        records = self._match_chain(matchers, terminal)
        if records is None:
            cursor.remaining = saved_remaining
            cursor.captures = saved_captures
            return CONTINUE
        captures = cursor.captures
        logger.debug("matched %r -> captures %r", matchers, captures)
        self.snapshot.hooks.match(self, records)
        return self.commit(block(*captures))

    def _verb(self, method: str, args: tuple[Any, ...]) -> Result:
        matchers, block = _split_block(args, method.lower())
        if not self.is_method(method):
            return CONTINUE
        # Without path matchers a verb call is an unconditional branch;
        # with them it is terminal.
        return self._if_match(matchers, block, terminal=bool(matchers))

    # -- Dispatch primitives --

    def on(self, *args: Any) -> Result:
        """Branch match. Commits once every matcher succeeds."""
        matchers, block = _split_block(args, "on")
        return self._if_match(matchers, block)

    def is_(self, *args: Any) -> Result:
        """Terminal match: like ``on`` but the whole path must be consumed."""
        matchers, block = _split_block(args, "is_")
        return self._if_match(matchers, block, terminal=True)

    def get(self, *args: Any) -> Result:
        return self._verb("GET", args)

    def post(self, *args: Any) -> Result:
        return self._verb("POST", args)

    def put(self, *args: Any) -> Result:
        return self._verb("PUT", args)

    def patch(self, *args: Any) -> Result:
        return self._verb("PATCH", args)

    def delete(self, *args: Any) -> Result:
        return self._verb("DELETE", args)

    def head(self, *args: Any) -> Result:
        return self._verb("HEAD", args)

    def options(self, *args: Any) -> Result:
        return self._verb("OPTIONS", args)

    def root(self, block: Block) -> Result:
        """Match a GET request for exactly ``/`` (relative to what was consumed)."""
        if self.cursor.remaining != "/" or not self.is_get:
            return CONTINUE
        return self.commit(block())

    # -- Table-driven dispatch --

    def hash_branches(self, namespace: str | None = None) -> Result:
        """Dispatch the next segment through the hash-branch table for *namespace*."""
        return dispatch_branches(self, namespace)

    def hash_paths(self, namespace: str | None = None) -> Result:
        """Dispatch the whole remaining path through the hash-path table."""
        return dispatch_paths(self, namespace)

    def hash_routes(self, namespace: str | None = None) -> Result:
        """Try ``hash_paths`` then ``hash_branches``.

        Pass *namespace* explicitly where you can; the default derives it
        from the matched path, which costs an extra slice per call.
        """
        ns = self.cursor.matched if namespace is None else namespace
        return dispatch_paths(self, ns) or dispatch_branches(self, ns)

    def route(self, name: str, namespace: str | None = None) -> Any:
        """Run the named route *name* and return its block value."""
        return dispatch_named(self, name, namespace)

    def multi_route(self, namespace: str | None = None, fallback: Block | None = None) -> Result:
        """Dispatch the first segment to the matching named route.

        *fallback* is called with the route name when the named route did
        not halt on its own.
        """
        return dispatch_multi(self, namespace, fallback)

    # -- Results --

    def commit(self, value: Any) -> Halted:
        """Write a block value into the response and halt."""
        if isinstance(value, Halted):
            return value
        self.block_result(value)
        return Halted(self.response)

    def block_result(self, value: Any) -> None:
        """Write a block's return value into the response."""
        if value is None or value is False or isinstance(value, Continue):
            return
        if isinstance(value, (str, bytes)):
            self.response.write(value)
            return
        writer = self.snapshot.result_writer(value)
        if writer is None:
            raise UnsupportedResultError(value)
        writer(self, value)

    def halt(
        self,
        body: Any = None,
        *,
        status: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Halted:
        """Finish the response now with an optional body, status, and headers."""
        if status is not None:
            self.response.status = status
        if headers:
            self.response.headers.update(headers)
        return self.commit(body)

    def redirect(self, location: str, status: int = 302) -> Halted:
        self.response.redirect(location, status)
        return Halted(self.response)

    def require(self, name: str) -> None:
        """Raise ``ConfigurationError`` unless a plugin provides *name*."""
        if name not in self.snapshot.request_methods:
            msg = f"r.{name} is not available; install the plugin that provides it"
            raise ConfigurationError(msg)
