"""Signed cookie sessions.

Session data is serialized as JSON and signed using ``itsdangerous``.
A before hook loads it into ``r.session``; an after hook writes the
cookie back only when the session changed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from itsdangerous import BadSignature, URLSafeTimedSerializer

from sprig.errors import ConfigurationError
from sprig.plugins.protocol import AFTER_SESSION, BEFORE_SESSION

if TYPE_CHECKING:
    from sprig.app import App
    from sprig.http.response import Response
    from sprig.routing.tree import RoutingRequest

logger = logging.getLogger("sprig.plugins")

_STATE_KEY = "session"


# -- Configuration --


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Session plugin configuration.

    ``secret_key`` falls back to ``AppConfig.secret_key``. Sessions are
    signed, not encrypted.
    """

    secret_key: str = ""
    cookie_name: str = "sprig.session"
    max_age: int = 86400  # 24 hours
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"


class Session(dict[str, Any]):
    """A dict that remembers whether it was changed."""

    modified: bool = False

    def __setitem__(self, key: str, value: Any) -> None:
        self.modified = True
        super().__setitem__(key, value)

    def __delitem__(self, key: str) -> None:
        self.modified = True
        super().__delitem__(key)

    def clear(self) -> None:
        self.modified = True
        super().clear()

    def pop(self, key: str, *default: Any) -> Any:
        self.modified = True
        return super().pop(key, *default)

    def setdefault(self, key: str, default: Any = None) -> Any:
        if key not in self:
            self.modified = True
        return super().setdefault(key, default)

    def update(self, *args: Any, **kwargs: Any) -> None:
        self.modified = True
        super().update(*args, **kwargs)


# -- Plugin --


@dataclass(frozen=True, slots=True)
class Sessions:
    """Signed cookie sessions, available as ``r.session``::

        app = App(AppConfig(secret_key="change-me"))
        app.plugin(Sessions())

        @app.route
        def routes(r):
            r.session["visits"] = r.session.get("visits", 0) + 1
            return f"Visits: {r.session['visits']}"
    """

    name: ClassVar[str] = "sessions"

    config: SessionConfig = field(default_factory=SessionConfig)
    _serializer: URLSafeTimedSerializer | None = field(
        default=None, init=False, repr=False, compare=False
    )

    def install(self, app: App) -> None:
        secret = self.config.secret_key or app.config.secret_key
        if not secret:
            msg = "Sessions need a secret: set SessionConfig.secret_key or AppConfig.secret_key."
            raise ConfigurationError(msg)
        object.__setattr__(self, "_serializer", URLSafeTimedSerializer(secret))
        app.before(self.load, priority=BEFORE_SESSION)
        app.after(self.save, priority=AFTER_SESSION)
        app.request_method("session", session_of, property=True)

    @property
    def serializer(self) -> URLSafeTimedSerializer:
        if self._serializer is None:
            msg = "Sessions plugin used before it was installed"
            raise ConfigurationError(msg)
        return self._serializer

    def load(self, r: RoutingRequest) -> None:
        r.state[_STATE_KEY] = self.decode(r.request.cookies.get(self.config.cookie_name))

    def decode(self, cookie_value: str | None) -> Session:
        """Verify and deserialize a cookie value. Bad or expired cookies give an empty session."""
        if not cookie_value:
            return Session()
        try:
            data = self.serializer.loads(cookie_value, max_age=self.config.max_age)
        except BadSignature:
            logger.info("Ignoring session cookie with a bad or expired signature")
            return Session()
        return Session(data) if isinstance(data, dict) else Session()

    def encode(self, session: dict[str, Any]) -> str:
        return self.serializer.dumps(dict(session))

    def save(self, r: RoutingRequest, response: Response) -> None:
        session = r.state.get(_STATE_KEY)
        if not isinstance(session, Session) or not session.modified:
            return
        cfg = self.config
        if not session and cfg.cookie_name in r.request.cookies:
            response.delete_cookie(cfg.cookie_name, path=cfg.path)
            return
        response.set_cookie(
            cfg.cookie_name,
            self.encode(session),
            max_age=cfg.max_age,
            path=cfg.path,
            domain=cfg.domain,
            secure=cfg.secure,
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )


def session_of(r: RoutingRequest) -> Session:
    """The request's session, created empty if no before hook ran."""
    session = r.state.get(_STATE_KEY)
    if session is None:
        session = r.state[_STATE_KEY] = Session()
    return session
