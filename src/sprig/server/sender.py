"""ASGI response sending — translates a finished Response to ASGI messages.

In-memory parts are joined into one body message. File parts are
streamed in chunks with ``more_body=True`` so large static files never
sit in memory.
"""

import logging

import anyio

from sprig._internal.asgi import Send
from sprig.http.response import FileBody, Response

logger = logging.getLogger("sprig.server")

CHUNK_SIZE = 64 * 1024


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def encode_headers(response: Response, content_length: int) -> list[tuple[bytes, bytes]]:
    raw_headers = [
        (name.encode("latin-1"), value.encode("latin-1"))
        for name, value in response.headers.pairs()
        if name != "content-length"
    ]
    raw_headers.append((b"content-length", str(content_length).encode("latin-1")))
    return raw_headers


async def send_response(response: Response, send: Send) -> None:
    """Translate a finished sprig Response into ASGI send() calls."""
    status = response.status or 200
    allowed = _body_allowed(status)
    content_length = response.content_length if allowed else 0
    if "content-length" in response.headers and not response.body:
        # HEAD responses keep the length of the body they dropped.
        content_length = int(str(response.headers["content-length"]))

    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": encode_headers(response, content_length),
        }
    )

    if not allowed or not any(isinstance(part, FileBody) for part in response.body):
        body = response.body_bytes if allowed else b""
        await send({"type": "http.response.body", "body": body})
        return

    buffered: list[bytes] = []
    for part in response.body:
        if isinstance(part, FileBody):
            if buffered:
                await send({"type": "http.response.body", "body": b"".join(buffered), "more_body": True})
                buffered.clear()
            await _send_file(part, send)
        else:
            buffered.append(part.encode("utf-8") if isinstance(part, str) else part)
    await send({"type": "http.response.body", "body": b"".join(buffered)})


async def _send_file(part: FileBody, send: Send) -> None:
    logger.debug("Streaming %s (%d bytes)", part.path, part.size)
    async with await anyio.open_file(part.path, "rb") as f:
        while chunk := await f.read(CHUNK_SIZE):
            await send({"type": "http.response.body", "body": chunk, "more_body": True})
