"""Serve static files from a directory through ``r.public()``."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from sprig.routing.result import CONTINUE, Halted, Result

if TYPE_CHECKING:
    from sprig.app import App
    from sprig.routing.tree import RoutingRequest


@dataclass(frozen=True, slots=True)
class PublicConfig:
    root: str | Path = "public"
    cache_control: str | None = "public, max-age=3600"


@dataclass(frozen=True, slots=True)
class Public:
    """Add ``r.public()``, which serves the remaining path from ``config.root``.

    Only GET and HEAD are served. Paths with ``.`` or ``..`` segments,
    paths resolving outside the root, and missing files do not match,
    so routing continues::

        @app.route
        def routes(r):
            return r.public() or r.on("api", api)

    The file is streamed at the ASGI edge, never read into memory.
    """

    name: ClassVar[str] = "public"

    config: PublicConfig = field(default_factory=PublicConfig)

    def install(self, app: App) -> None:
        app.request_method("public", self.serve)

    def resolve(self, remaining: str) -> Path | None:
        """Map a remaining path to a file under the root, or ``None``."""
        root = Path(self.config.root).resolve()
        segments = [segment for segment in remaining.split("/") if segment]
        if not segments or any(s in (".", "..") or "\0" in s for s in segments):
            return None
        path = root.joinpath(*segments).resolve()
        if not path.is_relative_to(root) or not path.is_file():
            return None
        return path

    def serve(self, r: RoutingRequest) -> Result:
        if r.method not in ("GET", "HEAD"):
            return CONTINUE
        path = self.resolve(r.cursor.remaining)
        if path is None:
            return CONTINUE
        r.cursor.consume_all()
        r.response.send_file(path)
        if self.config.cache_control:
            r.response.headers.setdefault("cache-control", self.config.cache_control)
        return Halted(r.response)
