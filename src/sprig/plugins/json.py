"""Write ``dict`` and ``list`` block results as JSON."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from sprig.app import App
    from sprig.routing.tree import RoutingRequest


@dataclass(frozen=True, slots=True)
class Json:
    """Serialize JSON-like block results.

    ``r.on("api", lambda: {"ok": True})`` writes ``{"ok": true}`` with an
    ``application/json`` content type. *types* adds more result types;
    *serializer* replaces ``json.dumps``.
    """

    name: ClassVar[str] = "json"

    types: tuple[type, ...] = ()
    content_type: str = "application/json"
    serializer: Callable[[Any], str] = field(default=json.dumps)

    def install(self, app: App) -> None:
        for type_ in (dict, list, *self.types):
            app.result_handler(type_, self.write)

    def write(self, r: RoutingRequest, value: Any) -> None:
        r.response.headers["content-type"] = self.content_type
        r.response.write(self.serializer(value))
