"""Tests for sprig.app — registration, freezing, parent overlay, ASGI entry."""

from dataclasses import dataclass
from typing import ClassVar

import pytest

from sprig.app import App
from sprig.config import AppConfig
from sprig.errors import ConfigurationError, FrozenAppError, UnknownMatcherError
from sprig.http.request import Request
from sprig.routing.matchers import sym
from sprig.testing import TestClient


def _dispatch(app: App, path: str, method: str = "GET"):
    return app.dispatch(Request.build(method, path))


@dataclass(frozen=True, slots=True)
class Greeter:
    name: ClassVar[str] = "greeter"
    greeting: str = "hello"

    def install(self, app: App) -> None:
        app.request_method("greet", lambda r, who: f"{self.greeting} {who}")


@dataclass(frozen=True, slots=True)
class Broken:
    name: ClassVar[str] = "broken"

    def install(self, app: App) -> None:
        raise RuntimeError("install failed")


class TestRegistration:
    def test_main_route(self) -> None:
        app = App()

        @app.route
        def routes(r):
            return r.root(lambda: "home")

        assert _dispatch(app, "/").text == "home"

    def test_default_main_is_hash_routes(self) -> None:
        app = App()
        assert _dispatch(app, "/").status == 404

    def test_class_matcher_from_regex(self) -> None:
        class Slug(str):
            pass

        app = App()
        app.class_matcher(Slug, r"([a-z-]+)", Slug)

        @app.route
        def routes(r):
            return r.on("posts", Slug, lambda slug: f"{type(slug).__name__}:{slug}")

        assert _dispatch(app, "/posts/hello-world").text == "Slug:hello-world"
        assert _dispatch(app, "/posts/Hello").status == 404

    def test_class_matcher_rejecting_converter_rolls_back(self) -> None:
        class Even(int):
            pass

        app = App()
        app.class_matcher(Even, int, lambda n: Even(n) if n % 2 == 0 else None)

        @app.route
        def routes(r):
            return r.on(Even, lambda n: f"even {n}") or r.on(int, lambda n: f"odd {n}")

        assert _dispatch(app, "/4").text == "even 4"
        assert _dispatch(app, "/3").text == "odd 3"

    def test_symbol_matcher(self) -> None:
        app = App()
        app.symbol_matcher("year", r"(\d{4})", int)

        @app.route
        def routes(r):
            return r.on("archive", sym.year, lambda year: f"year {year + 1}")

        assert _dispatch(app, "/archive/2023").text == "year 2024"

    def test_symbol_matcher_chained_on_symbol(self) -> None:
        app = App()
        app.symbol_matcher("page", sym.d, lambda text: int(text) or None)

        @app.route
        def routes(r):
            return r.is_(sym.page, lambda page: f"page {page}")

        assert _dispatch(app, "/3").text == "page 3"
        assert _dispatch(app, "/0").status == 404

    def test_matcher_on_unknown_base(self) -> None:
        app = App()
        with pytest.raises(UnknownMatcherError):
            app.class_matcher(bytes, float)
        with pytest.raises(UnknownMatcherError):
            app.symbol_matcher("x", sym.missing)

    def test_matcher_bad_pattern(self) -> None:
        app = App()
        with pytest.raises(ConfigurationError, match="regex, class, or symbol"):
            app.symbol_matcher("x", 42)  # type: ignore[arg-type]

    def test_hash_matcher(self) -> None:
        app = App()

        @app.hash_matcher("version")
        def version(r, expected):
            return r.headers.get("x-version") == expected

        @app.route
        def routes(r):
            return r.on({"version": "2"}, lambda: "v2") or r.on(True, lambda: "v1")

        assert app.dispatch(Request.build("GET", "/", headers={"x-version": "2"})).text == "v2"
        assert _dispatch(app, "/").text == "v1"

    def test_hash_args_validation(self) -> None:
        app = App()
        with pytest.raises(TypeError, match="namespace"):
            app.hash_branch("a", "b", "c")
        with pytest.raises(TypeError, match="target"):
            app.autoload_hash_branch("only_one")


class TestPlugins:
    def test_install(self) -> None:
        app = App()
        app.plugin(Greeter())
        assert app.has_plugin("greeter")
        assert app.has_request_method("greet")

        @app.route
        def routes(r):
            return r.on(str, lambda who: r.greet(who))

        assert _dispatch(app, "/world").text == "hello world"

    def test_equal_reinstall_is_noop(self) -> None:
        app = App()
        app.plugin(Greeter())
        app.plugin(Greeter())
        assert app.snapshot.plugins == ("greeter",)

    def test_conflicting_options(self) -> None:
        app = App()
        app.plugin(Greeter())
        with pytest.raises(ConfigurationError, match="different options"):
            app.plugin(Greeter("hi"))

    def test_failed_install_is_not_recorded(self) -> None:
        app = App()
        with pytest.raises(RuntimeError, match="install failed"):
            app.plugin(Broken())
        assert not app.has_plugin("broken")

    def test_request_method_cannot_shadow(self) -> None:
        app = App()
        with pytest.raises(ConfigurationError, match="shadow"):
            app.request_method("on", lambda r: None)


class TestFreeze:
    def test_freeze_blocks_registration(self) -> None:
        app = App()
        app.freeze()
        assert app.frozen
        with pytest.raises(FrozenAppError, match="Cannot modify"):
            app.route(lambda r: None)
        with pytest.raises(FrozenAppError):
            app.before(lambda r: None)
        with pytest.raises(FrozenAppError):
            app.plugin(Greeter())

    def test_freeze_is_idempotent(self) -> None:
        app = App()
        app.freeze()
        snapshot = app.snapshot
        app.freeze()
        assert app.snapshot is snapshot
        assert snapshot.frozen

    def test_first_use_freezes(self) -> None:
        app = App()
        _dispatch(app, "/")
        assert app.frozen

    def test_snapshot_tables_are_read_only(self) -> None:
        app = App()
        app.hash_branch("a")(lambda r: "a")
        snapshot = app.freeze().snapshot
        with pytest.raises(TypeError):
            snapshot.hash_tables.branches[""]["/b"] = lambda r: "b"  # type: ignore[index]

    def test_dev_mode_rebuilds(self) -> None:
        app = App(AppConfig(auto_freeze=False))
        assert _dispatch(app, "/late").status == 404
        first = app.snapshot
        assert app.snapshot is first
        app.hash_branch("late")(lambda r: "late")
        assert not app.frozen
        assert app.snapshot is not first
        assert not app.snapshot.frozen
        assert _dispatch(app, "/late").text == "late"


class TestParentOverlay:
    def test_child_inherits_and_overrides(self) -> None:
        base = App()
        base.hash_branch("shared")(lambda r: "base shared")
        base.hash_branch("over")(lambda r: "base over")
        child = App(parent=base)
        child.hash_branch("over")(lambda r: "child over")

        assert _dispatch(child, "/shared").text == "base shared"
        assert _dispatch(child, "/over").text == "child over"
        assert _dispatch(base, "/over").text == "base over"

    def test_child_registration_leaves_parent_untouched(self) -> None:
        base = App()
        child = App(parent=base)
        child.symbol_matcher("slug", r"([a-z]+)")
        child.plugin(Greeter())
        assert not base.has_plugin("greeter")
        assert child.has_plugin("greeter")
        assert "slug" not in base.snapshot.matchers.symbols

    def test_parent_plugin_conflict(self) -> None:
        base = App()
        base.plugin(Greeter())
        child = App(parent=base)
        child.plugin(Greeter())
        with pytest.raises(ConfigurationError):
            child.plugin(Greeter("hey"))

    def test_inherits_main_route_and_config(self) -> None:
        base = App(AppConfig(default_content_type="text/plain"))

        @base.route
        def routes(r):
            return r.root(lambda: "base root")

        child = App(parent=base)
        response = _dispatch(child, "/")
        assert response.text == "base root"
        assert response.headers["content-type"] == "text/plain"

    def test_hooks_parent_first(self) -> None:
        calls: list[str] = []
        base = App()
        base.before(lambda r: calls.append("base"))
        child = App(parent=base)
        child.before(lambda r: calls.append("child"))
        _dispatch(child, "/")
        assert calls == ["base", "child"]


class TestASGI:
    async def test_basic_request(self) -> None:
        app = App()

        @app.route
        def routes(r):
            return r.root(lambda: "Hello, World!")

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.status == 200
        assert response.text == "Hello, World!"
        assert response.content_type == "text/html; charset=utf-8"

    async def test_not_found(self) -> None:
        async with TestClient(App()) as client:
            response = await client.get("/missing")
        assert response.status == 404
        assert response.body == b""

    async def test_query_and_form_params(self) -> None:
        app = App()

        @app.route
        def routes(r):
            return r.on("echo", lambda: ",".join(f"{k}={v}" for k, v in sorted(r.params.items())))

        async with TestClient(app) as client:
            response = await client.post("/echo?a=1", form={"b": "2"})
        assert response.text == "a=1,b=2"
