"""Tests for sprig.http.request — the immutable inbound Request."""

import json

import pytest

from sprig.errors import RequestTooLarge
from sprig.http.request import Request


def _make_scope(**overrides: object) -> dict[str, object]:
    """Build a minimal valid ASGI HTTP scope."""
    base: dict[str, object] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "root_path": "",
        "headers": [],
        "server": ("localhost", 8000),
        "client": ("127.0.0.1", 54321),
    }
    base.update(overrides)
    return base


def _make_receive(*bodies: bytes):
    """An ASGI receive callable yielding *bodies* as separate messages."""
    messages = [
        {"type": "http.request", "body": body, "more_body": i < len(bodies) - 1}
        for i, body in enumerate(bodies)
    ] or [{"type": "http.request", "body": b"", "more_body": False}]
    it = iter(messages)

    async def receive():
        return next(it)

    return receive


class TestFromASGI:
    async def test_fields(self) -> None:
        scope = _make_scope(
            method="POST",
            path="/users",
            query_string=b"page=2",
            headers=[(b"host", b"example.com:8080"), (b"cookie", b"a=1")],
        )
        req = await Request.from_asgi(scope, _make_receive(b"data"))
        assert req.method == "POST"
        assert req.path == "/users"
        assert req.query["page"] == "2"
        assert req.body == b"data"
        assert req.host == "example.com"
        assert req.cookies == {"a": "1"}
        assert req.client == ("127.0.0.1", 54321)
        assert req.url == "/users?page=2"

    async def test_chunked_body(self) -> None:
        req = await Request.from_asgi(_make_scope(), _make_receive(b"ab", b"cd", b"ef"))
        assert req.body == b"abcdef"

    async def test_body_limit(self) -> None:
        with pytest.raises(RequestTooLarge, match="4 bytes") as exc_info:
            await Request.from_asgi(_make_scope(), _make_receive(b"abc", b"de"), max_content_length=4)
        assert exc_info.value.limit == 4

    async def test_disconnect_ends_body(self) -> None:
        async def receive():
            return {"type": "http.disconnect"}

        req = await Request.from_asgi(_make_scope(), receive)
        assert req.body == b""


class TestBuild:
    def test_query_in_path(self) -> None:
        req = Request.build("get", "/search?q=sprig&tag=a&tag=b")
        assert req.method == "GET"
        assert req.path == "/search"
        assert req.query.get_list("tag") == ["a", "b"]
        assert req.url == "/search?q=sprig&tag=a&tag=b"

    def test_empty_path_is_root(self) -> None:
        assert Request.build("GET", "").path == "/"

    def test_host_fallbacks(self) -> None:
        assert Request.build("GET", "/").host == ""
        assert Request.build("GET", "/", headers={"host": "[::1]:8000"}).host == "[::1]"

    def test_user_agent(self) -> None:
        assert Request.build("GET", "/").user_agent == ""
        assert Request.build("GET", "/", headers={"User-Agent": "curl/8"}).user_agent == "curl/8"


class TestParams:
    def test_form_body_overrides_query(self) -> None:
        req = Request.build(
            "POST",
            "/?a=query&b=2",
            headers={"content-type": "application/x-www-form-urlencoded"},
            body=b"a=form&c=3",
        )
        assert req.params == {"a": "form", "b": "2", "c": "3"}

    def test_json_body(self) -> None:
        req = Request.build(
            "POST",
            "/",
            headers={"content-type": "application/json; charset=utf-8"},
            body=json.dumps({"name": "sprig"}).encode(),
        )
        assert req.params == {"name": "sprig"}
        assert req.json() == {"name": "sprig"}

    def test_json_array_body_not_params(self) -> None:
        req = Request.build("POST", "/", headers={"content-type": "application/json"}, body=b"[1]")
        assert req.params == {}

    def test_unknown_body_ignored(self) -> None:
        req = Request.build("POST", "/?x=1", headers={"content-type": "text/plain"}, body=b"hi")
        assert req.params == {"x": "1"}
        assert req.text() == "hi"

    def test_params_cached(self) -> None:
        req = Request.build("GET", "/?x=1")
        assert req.params is req.params

    def test_undecodable_json_gives_no_body_params(self) -> None:
        req = Request.build("POST", "/?x=1", headers={"content-type": "application/json"}, body=b"{")
        assert req.body_params == {}
        assert req.params == {"x": "1"}

    def test_invalid_utf8_form_body_is_replaced(self) -> None:
        req = Request.build(
            "POST",
            "/",
            headers={"content-type": "application/x-www-form-urlencoded"},
            body=b"name=caf\xe9",
        )
        assert req.params == {"name": "caf�"}
