"""Request pipeline — before hooks, main route, after hooks, error pass.

``dispatch`` is the synchronous core used by ``App.dispatch`` and the
test client. ``handle_request`` is the ASGI edge: it reads the body,
runs ``dispatch`` (on a worker thread when configured), and sends the
response back through ASGI ``send()``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import anyio.to_thread

from sprig._internal.asgi import Receive, Scope, Send
from sprig.errors import RequestTooLarge
from sprig.http.request import Request
from sprig.http.response import Response
from sprig.routing.cursor import PathCursor
from sprig.routing.result import Halted
from sprig.routing.tree import RoutingRequest
from sprig.server.sender import send_response

if TYPE_CHECKING:
    from sprig._internal.types import RouteHandler
    from sprig.snapshot import AppSnapshot

logger = logging.getLogger("sprig.server")


def _run_pass(r: RoutingRequest, block: RouteHandler, *, error_pass: bool) -> Response:
    hooks = r.snapshot.hooks
    halted = None if error_pass else hooks.before(r)
    if not isinstance(halted, Halted):
        r.commit(block(r))
    response = r.response.finish(r.snapshot.config.default_content_type)
    if error_pass:
        hooks.after_safe(r, response)
    else:
        hooks.after(r, response)
    return response


def dispatch(snapshot: AppSnapshot, request: Request) -> Response:
    """Route *request* through *snapshot* and return the finished response.

    Exceptions escape unless an error handler is installed and covers
    them. The error pass starts from a reset 500 response and a fresh
    path cursor, skips before hooks, and never lets an after-hook failure
    mask the original error.
    """
    r = RoutingRequest(snapshot, request)
    try:
        return _run_pass(r, snapshot.main, error_pass=False)
    except Exception as exc:
        handler = snapshot.error_handler
        if handler is None or not isinstance(exc, handler.exceptions):
            raise
        logger.exception("Error handling %s %s", request.method, request.path)
        r.response.reset()
        r.response.status = 500
        r.cursor = PathCursor(request.path)

        def handle_error(r: RoutingRequest) -> Any:
            return handler.func(r, exc)

        return _run_pass(r, handle_error, error_pass=True)


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    snapshot: AppSnapshot,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    config = snapshot.config
    try:
        request = await Request.from_asgi(
            scope, receive, max_content_length=config.max_content_length
        )
    except RequestTooLarge as exc:
        logger.warning("Rejected %s %s: %s", scope["method"], scope["path"], exc)
        response = Response(status=413).finish(config.default_content_type)
        await send_response(response, send)
        return

    if config.threaded_dispatch:
        response = await anyio.to_thread.run_sync(dispatch, snapshot, request)
    else:
        response = dispatch(snapshot, request)
    await send_response(response, send)
