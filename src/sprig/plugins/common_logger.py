"""Access logging in Common Log Format."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar

from sprig.plugins.protocol import AFTER_LOG, BEFORE_EARLY

if TYPE_CHECKING:
    from sprig.app import App
    from sprig.http.response import Response
    from sprig.routing.tree import RoutingRequest

_START_KEY = "common_logger.start"


def format_line(r: RoutingRequest, response: Response, elapsed: float) -> str:
    request = r.request
    client = request.client[0] if request.client else "-"
    stamp = datetime.now(UTC).strftime("%d/%b/%Y:%H:%M:%S %z")
    length = response.content_length or response.headers.get("content-length") or "-"
    return (
        f'{client} - - [{stamp}] "{request.method} {request.url} HTTP/1.1" '
        f"{response.status} {length} {elapsed:0.4f}"
    )


@dataclass(frozen=True, slots=True)
class CommonLogger:
    """Log one line per request to *logger_name* at INFO level."""

    name: ClassVar[str] = "common_logger"

    logger_name: str = "sprig.access"

    def install(self, app: App) -> None:
        app.before(self.start, priority=BEFORE_EARLY)
        app.after(self.log, priority=AFTER_LOG)

    def start(self, r: RoutingRequest) -> None:
        r.state[_START_KEY] = time.perf_counter()

    def log(self, r: RoutingRequest, response: Response) -> None:
        started = r.state.get(_START_KEY)
        elapsed = time.perf_counter() - started if started is not None else 0.0
        logging.getLogger(self.logger_name).info("%s", format_line(r, response, elapsed))
