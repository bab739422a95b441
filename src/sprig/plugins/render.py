"""Template rendering with kida.

Adds two request methods::

    r.render("user.html", user=user)   # just the template
    r.view("user.html", user=user)     # the template inside the layout

The layout receives the rendered page as ``content``::

    <html><body>{{ content }}</body></html>
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from kida import Environment, FileSystemLoader
from kida.template import Markup

if TYPE_CHECKING:
    from sprig.app import App
    from sprig.routing.tree import RoutingRequest


@dataclass(frozen=True, slots=True)
class RenderConfig:
    """Template configuration. Ignored when an environment is passed directly."""

    template_dir: str | Path = "templates"
    layout: str | None = None
    autoescape: bool = True
    auto_reload: bool = False


def create_environment(config: RenderConfig) -> Environment:
    """Create a kida Environment that loads from ``config.template_dir``."""
    return Environment(
        loader=FileSystemLoader(str(config.template_dir)),
        autoescape=config.autoescape,
        auto_reload=config.auto_reload,
    )


@dataclass(frozen=True, slots=True)
class Render:
    """Install ``r.render`` and ``r.view`` backed by a kida Environment.

    Pass *env* to reuse an environment built elsewhere (for example one
    with a ``DictLoader`` in tests); otherwise one is created from
    *config*. The ``layout`` setting always comes from *config*.
    """

    name: ClassVar[str] = "render"

    config: RenderConfig = field(default_factory=RenderConfig)
    env: Environment | None = field(default=None, compare=False)
    filters: tuple[tuple[str, Any], ...] = ()
    globals: tuple[tuple[str, Any], ...] = ()

    @property
    def environment(self) -> Environment:
        env = self.env
        if env is None:
            env = create_environment(self.config)
            object.__setattr__(self, "env", env)
        return env

    def install(self, app: App) -> None:
        env = self.environment
        if self.filters:
            env.update_filters(dict(self.filters))
        for name, value in self.globals:
            env.add_global(name, value)
        app.request_method("render", self.render)
        app.request_method("view", self.view)

    def render(self, r: RoutingRequest, template: str, **context: Any) -> str:
        """Render *template* with *context*."""
        return self.environment.get_template(template).render(context)

    def view(self, r: RoutingRequest, template: str, **context: Any) -> str:
        """Render *template*, wrapped in the configured layout if there is one."""
        content = self.render(r, template, **context)
        layout = self.config.layout
        if layout is None:
            return content
        return self.environment.get_template(layout).render({**context, "content": Markup(content)})
