"""Tests for sprig.routing.cursor — remaining path, captures, rollback."""

import re

from sprig.routing.cursor import PathCursor


class TestLiteral:
    def test_consumes_segment(self) -> None:
        cursor = PathCursor("/users/42")
        assert cursor.try_consume_literal("users") is True
        assert cursor.remaining == "/42"
        assert cursor.matched == "/users"

    def test_requires_segment_boundary(self) -> None:
        cursor = PathCursor("/usersx")
        assert cursor.try_consume_literal("users") is False
        assert cursor.remaining == "/usersx"

    def test_multi_segment_literal(self) -> None:
        cursor = PathCursor("/api/v1/items")
        assert cursor.try_consume_literal("api/v1") is True
        assert cursor.remaining == "/items"

    def test_whole_path(self) -> None:
        cursor = PathCursor("/about")
        assert cursor.try_consume_literal("about") is True
        assert cursor.remaining == ""

    def test_no_leading_slash(self) -> None:
        cursor = PathCursor("")
        assert cursor.try_consume_literal("x") is False


class TestSegmentPattern:
    def test_groups_become_captures(self) -> None:
        cursor = PathCursor("/2024/05")
        pattern = re.compile(r"\A/(\d+)/(\d+)")
        assert cursor.try_consume_segment(pattern) is True
        assert cursor.captures == ["2024", "05"]
        assert cursor.remaining == ""

    def test_converter_value_is_captured(self) -> None:
        cursor = PathCursor("/7")
        assert cursor.try_consume_segment(re.compile(r"\A/(\d+)"), int) is True
        assert cursor.captures == [7]

    def test_converter_tuple_pushes_each_value(self) -> None:
        cursor = PathCursor("/3x4")
        pattern = re.compile(r"\A/(\d)x(\d)")
        assert cursor.try_consume_segment(pattern, lambda a, b: (int(a), int(b))) is True
        assert cursor.captures == [3, 4]

    def test_converter_none_rejects_without_consuming(self) -> None:
        cursor = PathCursor("/99")
        assert cursor.try_consume_segment(re.compile(r"\A/(\d+)"), lambda v: None) is False
        assert cursor.remaining == "/99"
        assert cursor.captures == []

    def test_converter_false_rejects(self) -> None:
        cursor = PathCursor("/99")
        assert cursor.try_consume_segment(re.compile(r"\A/(\d+)"), lambda v: False) is False
        assert cursor.remaining == "/99"

    def test_converter_zero_is_a_value(self) -> None:
        cursor = PathCursor("/0")
        assert cursor.try_consume_segment(re.compile(r"\A/(\d+)"), int) is True
        assert cursor.captures == [0]

    def test_whole_restores_on_leftover(self) -> None:
        cursor = PathCursor("/1/2")
        assert cursor.try_consume_whole(re.compile(r"\A/(\d+)")) is False
        assert cursor.remaining == "/1/2"
        assert cursor.captures == []


class TestRollback:
    def test_restore_truncates_captures(self) -> None:
        cursor = PathCursor("/a/b")
        cursor.push("kept")
        snap = cursor.snapshot()
        cursor.try_consume_literal("a")
        cursor.push("dropped")
        cursor.restore(snap)
        assert cursor.remaining == "/a/b"
        assert cursor.captures == ["kept"]

    def test_consume_all(self) -> None:
        cursor = PathCursor("/x/y")
        assert cursor.consume_all() == "/x/y"
        assert cursor.remaining == ""
        assert cursor.matched == "/x/y"
