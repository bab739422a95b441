"""Immutable inbound HTTP request.

Frozen metadata plus the fully read body. The routing tree is
synchronous, so the ASGI edge reads the body before dispatch and the
request never suspends once routing starts.
"""

from __future__ import annotations

import json as json_module
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sprig._internal.asgi import Receive, Scope
from sprig.errors import RequestTooLarge
from sprig.http.cookies import parse_cookies
from sprig.http.headers import Headers
from sprig.http.query import QueryParams

logger = logging.getLogger("sprig.server")


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``params`` merges query parameters with urlencoded or JSON body
    parameters (body wins on conflicts) and is computed once. A body
    that does not decode contributes no parameters.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    body: bytes = b""
    scheme: str = "http"
    root_path: str = ""
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None
    cookies: Mapping[str, str] = field(default_factory=dict)

    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def host(self) -> str:
        """Host name from the Host header (port stripped), falling back to the server."""
        value = self.headers.get("host")
        if value is None:
            return self.server[0] if self.server else ""
        if value.startswith("["):
            return value.partition("]")[0] + "]"
        return value.rpartition(":")[0] if ":" in value else value

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "") or ""

    @property
    def url(self) -> str:
        """Full request path including the query string."""
        qs = self.query.raw
        if qs:
            return f"{self.path}?{qs.decode('latin-1')}"
        return self.path

    @property
    def body_params(self) -> Mapping[str, Any]:
        """Parameters decoded from a urlencoded or JSON body."""
        if "body_params" in self._cache:
            return self._cache["body_params"]
        ct = (self.content_type or "").split(";")[0].strip().lower()
        result: Mapping[str, Any]
        if not self.body:
            result = {}
        elif ct == "application/x-www-form-urlencoded":
            result = QueryParams.from_body(self.body)
        elif ct == "application/json" or ct.endswith("+json"):
            try:
                decoded = json_module.loads(self.body)
            except ValueError:
                logger.debug("Ignoring undecodable JSON body on %s %s", self.method, self.path)
                decoded = None
            result = decoded if isinstance(decoded, dict) else {}
        else:
            result = {}
        self._cache["body_params"] = result
        return result

    @property
    def params(self) -> dict[str, Any]:
        """Query parameters merged with body parameters."""
        if "params" not in self._cache:
            merged: dict[str, Any] = dict(self.query)
            merged.update(self.body_params)
            self._cache["params"] = merged
        return self._cache["params"]

    def text(self) -> str:
        """The body decoded as UTF-8."""
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """The body parsed as JSON."""
        return json_module.loads(self.body)

    # -- Factories --

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> Request:
        """Create a Request directly, without an ASGI scope.

        ``path`` may carry a query string::

            Request.build("GET", "/users/42?tab=posts")
        """
        path_part, _, query_string = path.partition("?")
        header_map = Headers.from_mapping(headers)
        return cls(
            method=method.upper(),
            path=path_part or "/",
            headers=header_map,
            query=QueryParams(query_string.encode("latin-1")),
            body=body,
            cookies=parse_cookies(header_map.get("cookie", "") or ""),
        )

    @classmethod
    async def from_asgi(
        cls,
        scope: Scope,
        receive: Receive,
        *,
        max_content_length: int | None = None,
    ) -> Request:
        """Create a Request from an ASGI scope, reading the whole body.

        Raises ``RequestTooLarge`` once more than *max_content_length*
        bytes have arrived.
        """
        chunks: list[bytes] = []
        size = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            if chunk:
                size += len(chunk)
                if max_content_length is not None and size > max_content_length:
                    raise RequestTooLarge(max_content_length)
                chunks.append(chunk)
            if not message.get("more_body", False):
                break

        headers = Headers(tuple(scope.get("headers", ())))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            body=b"".join(chunks),
            scheme=scope.get("scheme", "http"),
            root_path=scope.get("root_path", ""),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "") or ""),
        )
