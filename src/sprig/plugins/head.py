"""Treat HEAD requests like GET and send no body."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from sprig.plugins.protocol import AFTER_HEAD

if TYPE_CHECKING:
    from sprig.app import App
    from sprig.http.response import Response
    from sprig.routing.tree import RoutingRequest


def strip_head_body(r: RoutingRequest, response: Response) -> None:
    """Drop the body of a HEAD response but keep its Content-Length."""
    if r.method != "HEAD" or not response.body:
        return
    response.headers["content-length"] = str(response.content_length)
    response.body.clear()


@dataclass(frozen=True, slots=True)
class Head:
    """``r.get`` and ``r.root`` also match HEAD; the response body is dropped."""

    name: ClassVar[str] = "head"

    def install(self, app: App) -> None:
        app.verb_alias("GET", "HEAD")
        app.after(strip_head_body, priority=AFTER_HEAD)
