"""Tests for the Render plugin — kida templates through r.render and r.view."""

import pytest
from kida import DictLoader, Environment

from sprig.app import App
from sprig.errors import ConfigurationError
from sprig.http.request import Request
from sprig.plugins import Render, RenderConfig

_TEMPLATES = {
    "about.html": "<p>About us</p>",
    "hello.html": "<p>Hello, {{ name }}!</p>",
    "layout.html": "<html><title>{{ title }}</title><body>{{ content }}</body></html>",
    "price.html": "{{ amount | money }}",
    "site.html": "{{ site_name }}",
    "team/index.html": "<p>Team</p>",
}


def _env() -> Environment:
    return Environment(loader=DictLoader(_TEMPLATES))


def _dispatch(app: App, path: str, method: str = "GET"):
    return app.dispatch(Request.build(method, path))


class TestRender:
    def test_render(self) -> None:
        app = App()
        app.plugin(Render(env=_env()))

        @app.route
        def routes(r):
            return r.on("hello", str, lambda name: r.render("hello.html", name=name))

        assert _dispatch(app, "/hello/World").text == "<p>Hello, World!</p>"

    def test_view_without_layout(self) -> None:
        app = App()
        app.plugin(Render(env=_env()))

        @app.route
        def routes(r):
            return r.root(lambda: r.view("hello.html", name="You"))

        assert _dispatch(app, "/").text == "<p>Hello, You!</p>"

    def test_view_with_layout(self) -> None:
        app = App()
        app.plugin(Render(RenderConfig(layout="layout.html"), env=_env()))

        @app.route
        def routes(r):
            return r.root(lambda: r.view("hello.html", name="You", title="Greeting"))

        text = _dispatch(app, "/").text
        assert text == "<html><title>Greeting</title><body><p>Hello, You!</p></body></html>"

    def test_filters_and_globals(self) -> None:
        app = App()
        app.plugin(
            Render(
                env=_env(),
                filters=(("money", lambda value: f"${value:,.2f}"),),
                globals=(("site_name", "Sprig"),),
            )
        )

        @app.route
        def routes(r):
            return r.on("price", lambda: r.render("price.html", amount=1234.5)) or r.on(
                "site", lambda: r.render("site.html")
            )

        assert _dispatch(app, "/price").text == "$1,234.50"
        assert _dispatch(app, "/site").text == "Sprig"

    def test_file_system_loader(self, tmp_path) -> None:
        (tmp_path / "index.html").write_text("<h1>{{ heading }}</h1>")
        app = App()
        app.plugin(Render(RenderConfig(template_dir=tmp_path)))

        @app.route
        def routes(r):
            return r.root(lambda: r.render("index.html", heading="Files"))

        assert _dispatch(app, "/").text == "<h1>Files</h1>"


class TestHashRouteViews:
    def test_view_path(self) -> None:
        app = App()
        app.plugin(Render(env=_env()))
        with app.hash_routes("") as routes:
            routes.view("about", "about.html")

        assert _dispatch(app, "/about").text == "<p>About us</p>"
        assert _dispatch(app, "/about/team").status == 404

    def test_view_only_answers_get(self) -> None:
        app = App()
        app.plugin(Render(env=_env()))
        with app.hash_routes("") as routes:
            routes.view("about", "about.html")

        assert _dispatch(app, "/about", "POST").status == 404
        assert _dispatch(app, "/about", "POST").text == ""

    def test_view_shares_path_with_other_verbs(self) -> None:
        app = App()
        app.plugin(Render(env=_env()))
        with app.hash_routes("") as routes:
            routes.view("about", "about.html")

            @routes.post("about")
            def contact(r):
                return "sent"

        assert _dispatch(app, "/about").text == "<p>About us</p>"
        assert _dispatch(app, "/about", "POST").text == "sent"

    def test_views_use_template_names(self) -> None:
        app = App()
        app.plugin(Render(env=_env()))
        with app.hash_routes("") as routes:
            routes.views(["about.html", "team/index.html"])

        assert _dispatch(app, "/about").text == "<p>About us</p>"
        assert _dispatch(app, "/team/index").text == "<p>Team</p>"
        assert _dispatch(app, "/about.html").status == 404

    def test_requires_render_plugin(self) -> None:
        app = App()
        with pytest.raises(ConfigurationError):
            app.hash_routes("").view("hello", "hello.html")
