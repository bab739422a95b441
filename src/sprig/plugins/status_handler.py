"""Render a body for empty responses with a given status (404 pages and the like)."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar

from sprig.plugins.protocol import AFTER_STATUS

if TYPE_CHECKING:
    from sprig.app import App
    from sprig.http.response import Response
    from sprig.routing.tree import RoutingRequest


@dataclass(frozen=True, slots=True)
class StatusHandler:
    """Map statuses to handler blocks called with ``r``.

    A handler only runs when the finished response has that status and
    an empty body. Headers are cleared first and the status is kept::

        app.plugin(StatusHandler({404: lambda r: "Nothing here", 403: forbidden}))
    """

    name: ClassVar[str] = "status_handler"

    handlers: Mapping[int, Callable[[RoutingRequest], Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "handlers", MappingProxyType(dict(self.handlers)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StatusHandler):
            return NotImplemented
        return dict(self.handlers) == dict(other.handlers)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.handlers)))

    def install(self, app: App) -> None:
        app.after(self.apply, priority=AFTER_STATUS)

    def apply(self, r: RoutingRequest, response: Response) -> None:
        handler = self.handlers.get(response.status or 0)
        if handler is None or response.body:
            return
        status = response.status
        response.headers.clear()
        r.commit(handler(r))
        response.status = status
        response.finish(r.snapshot.config.default_content_type)


def NotFound(handler: Callable[[RoutingRequest], Any]) -> StatusHandler:  # noqa: N802
    """Shorthand for ``StatusHandler({404: handler})``."""
    return StatusHandler({404: handler})
