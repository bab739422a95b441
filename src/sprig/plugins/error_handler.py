"""Answer exceptions raised while routing with a handler block."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from sprig.app import App
    from sprig.routing.tree import RoutingRequest


@dataclass(frozen=True, slots=True)
class ErrorHandler:
    """Install an error-handling pass.

    When a block (or a before/after hook) raises one of *exceptions*, the
    response is reset to an empty 500 and *handler* runs as a fresh main
    route with ``(r, exc)``. Before hooks are not re-run, and after hooks
    that fail during this pass are logged instead of raised::

        def oops(r, exc):
            return f"Sorry: {exc}"

        app.plugin(ErrorHandler(oops))
    """

    name: ClassVar[str] = "error_handler"

    handler: Callable[[RoutingRequest, Exception], Any]
    exceptions: tuple[type[BaseException], ...] = (Exception,)

    def install(self, app: App) -> None:
        app.error_handler(self.handler, self.exceptions)
