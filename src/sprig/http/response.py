"""Mutable HTTP response owned by a single request.

Route blocks write into it, plugins adjust headers, and after hooks
mutate it in place. Nothing replaces the object once the request has
started; ``reset()`` clears it for the error-handling pass.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path

from sprig.http.cookies import SetCookie
from sprig.http.headers import ResponseHeaders

_NO_BODY_STATUSES = frozenset({204, 304})


@dataclass(frozen=True, slots=True)
class FileBody:
    """A body part that streams a file from disk at the ASGI edge."""

    path: Path
    size: int

    @classmethod
    def for_path(cls, path: str | Path) -> FileBody:
        p = Path(path)
        return cls(path=p, size=p.stat().st_size)


type BodyPart = str | bytes | FileBody


@dataclass(slots=True)
class Response:
    """An HTTP response built by writing into it.

    ``status`` stays ``None`` until a block sets it or ``finish()``
    picks the default: 200 when something was written, 404 otherwise.
    """

    status: int | None = None
    headers: ResponseHeaders = field(default_factory=ResponseHeaders)
    body: list[BodyPart] = field(default_factory=list)

    def write(self, part: BodyPart) -> None:
        """Append a body part."""
        self.body.append(part)

    def redirect(self, location: str, status: int = 302) -> None:
        """Turn the response into a redirect."""
        self.status = status
        self.headers["location"] = location

    def set_cookie(self, name: str, value: str, **options: object) -> SetCookie:
        """Append a ``Set-Cookie`` header. Options map onto ``SetCookie``."""
        cookie = SetCookie(name, value, **options)  # type: ignore[arg-type]
        self.headers.add("set-cookie", cookie.to_header_value())
        return cookie

    def delete_cookie(self, name: str, path: str = "/") -> None:
        """Expire a cookie on the client."""
        self.headers.add("set-cookie", SetCookie(name, "", path=path).expired().to_header_value())

    def send_file(self, path: str | Path, content_type: str | None = None) -> None:
        """Replace the body with a file streamed at send time."""
        part = FileBody.for_path(path)
        self.body = [part]
        guessed, _ = mimetypes.guess_type(str(part.path))
        self.headers["content-type"] = content_type or guessed or "application/octet-stream"

    def reset(self) -> None:
        """Drop status, headers, and body (used before an error-handling pass)."""
        self.status = None
        self.headers.clear()
        self.body.clear()

    def finish(self, default_content_type: str = "text/html; charset=utf-8") -> Response:
        """Settle the status and default headers. Returns ``self``."""
        if self.status is None:
            self.status = 200 if self.body else 404
        if self.status in _NO_BODY_STATUSES:
            self.body.clear()
            self.headers.pop("content-type", None)
        elif "content-type" not in self.headers:
            self.headers["content-type"] = default_content_type
        return self

    # -- Body helpers --

    @property
    def is_empty(self) -> bool:
        return not any(
            part.size if isinstance(part, FileBody) else len(part) for part in self.body
        )

    @property
    def body_bytes(self) -> bytes:
        """In-memory body as bytes. File parts are read from disk."""
        chunks: list[bytes] = []
        for part in self.body:
            if isinstance(part, FileBody):
                chunks.append(part.path.read_bytes())
            elif isinstance(part, str):
                chunks.append(part.encode("utf-8"))
            else:
                chunks.append(part)
        return b"".join(chunks)

    @property
    def text(self) -> str:
        """Body as string."""
        return self.body_bytes.decode("utf-8")

    @property
    def content_length(self) -> int:
        total = 0
        for part in self.body:
            if isinstance(part, FileBody):
                total += part.size
            elif isinstance(part, str):
                total += len(part.encode("utf-8"))
            else:
                total += len(part)
        return total
