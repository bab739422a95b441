"""Sprig exception hierarchy.

Shared across the matcher registry, dispatch tree, App, and plugins so
every module raises and catches the same types.

Match failures are not errors: a matcher that does not match simply
returns ``False`` and the dispatch tree moves on to the next sibling.
"""


class SprigError(Exception):
    """Base for all sprig-specific errors."""


class ConfigurationError(SprigError):
    """Raised when routes, matchers, or plugins are declared incorrectly.

    Surfaces at registration time where possible, otherwise the first
    time the offending declaration is evaluated by a request.
    """


class UnsupportedMatcherError(ConfigurationError, TypeError):
    """A matcher value (or hash-matcher key) has no matching procedure."""

    def __init__(self, matcher: object) -> None:
        self.matcher = matcher
        super().__init__(f"unsupported matcher: {matcher!r}")


class UnknownMatcherError(ConfigurationError, LookupError):
    """A symbol or class matcher was used without being registered."""


class UnknownRouteError(ConfigurationError, LookupError):
    """Dispatch to a named route that was never registered."""

    def __init__(self, name: str, namespace: str | None) -> None:
        self.name = name
        self.namespace = namespace
        where = f" in namespace {namespace!r}" if namespace is not None else ""
        super().__init__(f"no named route {name!r}{where}")


class UnsupportedResultError(SprigError, TypeError):
    """A route block returned a value that no result handler can write."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"unsupported block result: {value!r}")


class FrozenAppError(SprigError, RuntimeError):
    """Registration attempted after the app was frozen."""

    def __init__(self, what: str = "the app") -> None:
        super().__init__(
            f"Cannot modify {what} after it has been frozen. "
            "Register routes, matchers, hooks, and plugins before calling app.freeze()."
        )


class RequestTooLarge(SprigError):  # noqa: N818 — mirrors the HTTP status name
    """The request body exceeds ``AppConfig.max_content_length``."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"request body exceeds {limit} bytes")
