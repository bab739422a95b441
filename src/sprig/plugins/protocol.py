"""Plugin protocol and hook priority slots.

A plugin is any object with a ``name`` and an ``install(app)`` method::

    @dataclass(frozen=True, slots=True)
    class Timing:
        name: ClassVar[str] = "timing"

        def install(self, app: App) -> None:
            app.before(start_timer, priority=BEFORE_EARLY)

No base class required. Plugins are usually frozen dataclasses so that
``app.plugin()`` can compare options: an equal reinstall is a no-op, a
different one is a configuration error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar, Protocol

if TYPE_CHECKING:
    from sprig.app import App

# Before hooks run lowest first.
BEFORE_EARLY = 10
BEFORE_SESSION = 30

# After hooks run lowest first, so a status page is rendered before the
# session cookie is written, the HEAD body dropped, and the line logged.
AFTER_STATUS = 10
AFTER_SESSION = 40
AFTER_HEAD = 80
AFTER_LOG = 90


class Plugin(Protocol):
    """Protocol for sprig plugins."""

    name: ClassVar[str]

    def install(self, app: App) -> None: ...
