"""Shared type aliases used across sprig modules."""

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from sprig.http.response import Response
    from sprig.routing.result import Halted
    from sprig.routing.tree import RoutingRequest

# Inline block passed to on/is_/verbs — called with the captures
Block: TypeAlias = Callable[..., Any]

# Registered handler (main route, named route, hash branch/path) — called with r
RouteHandler: TypeAlias = Callable[["RoutingRequest"], Any]

# Hooks composed by the HookChain
BeforeHook: TypeAlias = Callable[["RoutingRequest"], "Halted | None"]
AfterHook: TypeAlias = Callable[["RoutingRequest", "Response"], None]
# Receives (matcher, captures) pairs for every committed match
MatchHook: TypeAlias = Callable[["RoutingRequest", Sequence[tuple[Any, tuple[Any, ...]]]], None]

# Writes a non-string block value into r.response
ResultWriter: TypeAlias = Callable[["RoutingRequest", Any], None]

# Converter attached to a segment pattern; None or False rejects the match
Converter: TypeAlias = Callable[..., Any]
