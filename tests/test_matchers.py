"""Tests for sprig.routing.matchers — compiling matcher values and matching them."""

import re

import pytest

from sprig.app import App
from sprig.errors import UnknownMatcherError, UnsupportedMatcherError
from sprig.http.request import Request
from sprig.routing.matchers import (
    ALWAYS,
    NEVER,
    AllOf,
    AnyOf,
    ClassRef,
    Literal,
    MatcherEntry,
    PatternRef,
    Predicate,
    Symbol,
    SymbolRef,
    sym,
)
from sprig.routing.tree import RoutingRequest


def _request(path: str, *, method: str = "GET", headers: dict[str, str] | None = None) -> RoutingRequest:
    app = App()
    return RoutingRequest(app.snapshot, Request.build(method, path, headers=headers))


class TestSymbolFactory:
    def test_attribute_access(self) -> None:
        assert sym.d == Symbol("d")

    def test_call(self) -> None:
        assert sym("post-id") == Symbol("post-id")

    def test_repr(self) -> None:
        assert repr(sym.rest) == "sym.rest"


class TestCompile:
    def test_string_is_literal(self) -> None:
        r = _request("/")
        assert r.snapshot.matchers.compile("users") == Literal("users")

    def test_builtin_classes(self) -> None:
        registry = _request("/").snapshot.matchers
        assert isinstance(registry.compile(int), ClassRef)
        assert isinstance(registry.compile(str), ClassRef)

    def test_symbol(self) -> None:
        compiled = _request("/").snapshot.matchers.compile(sym.d)
        assert isinstance(compiled, SymbolRef)
        assert compiled.symbol == sym.d

    def test_regex_is_cached(self) -> None:
        registry = _request("/").snapshot.matchers
        regex = re.compile(r"(\d+)-(\d+)")
        first = registry.compile(regex)
        assert isinstance(first, PatternRef)
        assert registry.compile(regex) is first
        assert registry.cached_patterns == 1

    def test_booleans_and_none(self) -> None:
        registry = _request("/").snapshot.matchers
        assert registry.compile(True) is ALWAYS
        assert registry.compile(False) is NEVER
        assert registry.compile(None) is NEVER

    def test_list_and_tuple(self) -> None:
        registry = _request("/").snapshot.matchers
        assert isinstance(registry.compile(["a", "b"]), AnyOf)
        assert isinstance(registry.compile(("a", int)), AnyOf)

    def test_dict(self) -> None:
        compiled = _request("/").snapshot.matchers.compile({"method": "GET"})
        assert isinstance(compiled, AllOf)
        assert compiled.pairs[0][0] == "method"

    def test_callable_is_predicate(self) -> None:
        assert isinstance(_request("/").snapshot.matchers.compile(lambda: True), Predicate)

    def test_unsupported_value(self) -> None:
        with pytest.raises(UnsupportedMatcherError, match="unsupported matcher"):
            _request("/").snapshot.matchers.compile(3.5)

    def test_unsupported_hash_key(self) -> None:
        with pytest.raises(UnsupportedMatcherError):
            _request("/").snapshot.matchers.compile({"bogus": 1})

    def test_unregistered_class(self) -> None:
        with pytest.raises(UnknownMatcherError, match="float"):
            _request("/").snapshot.matchers.compile(float)

    def test_unregistered_symbol(self) -> None:
        with pytest.raises(UnknownMatcherError, match="sym.nope"):
            _request("/").snapshot.matchers.compile(sym.nope)


class TestMatcherEntry:
    def test_segment_stops_at_boundary(self) -> None:
        entry = MatcherEntry.segment(r"(\d+)")
        assert entry.pattern.match("/12abc") is None
        assert entry.pattern.match("/12/abc") is not None

    def test_then_chains_converters(self) -> None:
        entry = MatcherEntry.segment(r"(\d+)", int).then(lambda n: n * 2)
        assert entry.convert is not None
        assert entry.convert("21") == 42

    def test_then_short_circuits_rejection(self) -> None:
        calls: list[int] = []
        entry = MatcherEntry.segment(r"(\d+)", lambda v: None).then(calls.append)
        assert entry.convert is not None
        assert entry.convert("1") is None
        assert calls == []


class TestBuiltinMatching:
    def test_int_converts(self) -> None:
        r = _request("/42/rest")
        assert r.match_all((int,)) is True
        assert r.captures == [42]
        assert r.remaining_path == "/rest"

    def test_int_rejects_letters(self) -> None:
        r = _request("/4a")
        assert r.match_all((int,)) is False
        assert r.remaining_path == "/4a"

    def test_int_digit_cap(self) -> None:
        r = _request("/" + "9" * 101)
        assert r.match_all((int,)) is False

    def test_str_segment(self) -> None:
        r = _request("/hello/world")
        assert r.match_all((str,)) is True
        assert r.captures == ["hello"]

    def test_symbol_d_captures_text(self) -> None:
        r = _request("/12")
        assert r.match_all((sym.d,)) is True
        assert r.captures == ["12"]

    def test_symbol_rest(self) -> None:
        r = _request("/a/b/c")
        assert r.match_all((sym.rest,)) is True
        assert r.captures == ["a/b/c"]
        assert r.remaining_path == ""

    def test_symbol_opt_missing(self) -> None:
        r = _request("/")
        assert r.match_all((sym.opt,)) is True
        assert r.captures == [None]
        assert r.remaining_path == "/"

    def test_symbol_opt_present(self) -> None:
        r = _request("/x/y")
        assert r.match_all((sym.opt,)) is True
        assert r.captures == ["x"]
        assert r.remaining_path == "/y"

    def test_regex_groups(self) -> None:
        r = _request("/2024-05/posts")
        assert r.match_all((re.compile(r"(\d+)-(\d+)"),)) is True
        assert r.captures == ["2024", "05"]
        assert r.remaining_path == "/posts"


class TestAnyOf:
    def test_string_option_is_captured(self) -> None:
        r = _request("/bar")
        assert r.match_all((["foo", "bar"],)) is True
        assert r.captures == ["bar"]

    def test_class_option_captures_its_value(self) -> None:
        r = _request("/5")
        assert r.match_all((["new", int],)) is True
        assert r.captures == [5]

    def test_no_option_matches(self) -> None:
        r = _request("/baz")
        assert r.match_all((["foo", "bar"],)) is False
        assert r.remaining_path == "/baz"
        assert r.captures == []


class TestPredicate:
    def test_true_matches_without_capture(self) -> None:
        r = _request("/")
        assert r.match_all((lambda: True,)) is True
        assert r.captures == []

    def test_value_is_captured(self) -> None:
        r = _request("/")
        assert r.match_all((lambda: "found",)) is True
        assert r.captures == ["found"]

    def test_falsy_does_not_match(self) -> None:
        r = _request("/")
        assert r.match_all((lambda: 0,)) is False


class TestHashMatchers:
    def test_method(self) -> None:
        assert _request("/", method="POST").match_all(({"method": "post"},)) is True
        assert _request("/").match_all(({"method": ["put", "post"]},)) is False

    def test_header_captures_value(self) -> None:
        r = _request("/", headers={"X-Token": "abc"})
        assert r.match_all(({"header": "x-token"},)) is True
        assert r.captures == ["abc"]

    def test_missing_header(self) -> None:
        assert _request("/").match_all(({"header": "x-token"},)) is False

    def test_host_equality(self) -> None:
        r = _request("/", headers={"host": "example.com:8080"})
        assert r.match_all(({"host": "example.com"},)) is True
        assert r.captures == []

    def test_user_agent(self) -> None:
        r = _request("/", headers={"user-agent": "Mozilla/5.0 Firefox/115.0"})
        assert r.match_all(({"user_agent": r"Firefox/(\d+)"},)) is True
        assert r.captures == ["115"]

    def test_accept_sets_content_type(self) -> None:
        r = _request("/", headers={"accept": "text/html, application/json;q=0.9"})
        assert r.match_all(({"accept": "application/json"},)) is True
        assert r.response.headers["content-type"] == "application/json"

    def test_accept_missing(self) -> None:
        r = _request("/", headers={"accept": "text/html"})
        assert r.match_all(({"accept": "application/json"},)) is False
        assert "content-type" not in r.response.headers

    def test_param(self) -> None:
        r = _request("/?q=sprig")
        assert r.match_all(({"param": "q"},)) is True
        assert r.captures == ["sprig"]

    def test_param_bang_rejects_empty(self) -> None:
        assert _request("/?q=").match_all(({"param": "q"},)) is True
        assert _request("/?q=").match_all(({"param!": "q"},)) is False

    def test_all_matches_nested_chain(self) -> None:
        r = _request("/a/3")
        assert r.match_all(({"all": ["a", int]},)) is True
        assert r.captures == [3]

    def test_all_failure_restores(self) -> None:
        r = _request("/a/x")
        assert r.match_all(({"all": ["a", int]},)) is False
        assert r.remaining_path == "/a/x"

    def test_every_pair_must_match(self) -> None:
        r = _request("/items", method="POST", headers={"x-token": "t"})
        assert r.match_all(({"method": "POST", "header": "x-token"},)) is True
        assert r.captures == ["t"]
        assert r.match_all(({"method": "GET", "header": "x-token"},)) is False
