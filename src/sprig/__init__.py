"""Sprig — a routing-tree web toolkit.

Routes are plain Python: each request walks a tree of ``on`` / ``is_``
calls, consuming the path one matcher at a time. The first branch whose
matchers all succeed owns the request.

Basic usage::

    from sprig import App

    app = App()

    @app.route
    def routes(r):
        return (
            r.root(lambda: "Hello, World!")
            or r.on("users", int, lambda user_id: r.get(lambda: f"user {user_id}"))
        )

Large apps split the tree into O(1) hash tables::

    with app.hash_routes("") as routes:
        @routes.on("admin")
        def admin(r):
            return r.hash_routes("/admin")
"""

__version__ = "0.1.0"
__all__ = [
    "CONTINUE",
    "App",
    "AppConfig",
    "ConfigurationError",
    "FrozenAppError",
    "Halted",
    "Request",
    "Response",
    "RoutingRequest",
    "SprigError",
    "Symbol",
    "UnknownMatcherError",
    "UnknownRouteError",
    "UnsupportedMatcherError",
    "UnsupportedResultError",
    "sym",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import sprig`` fast while providing a clean top-level API.
    """
    if name == "App":
        from sprig.app import App

        return App

    if name == "AppConfig":
        from sprig.config import AppConfig

        return AppConfig

    if name == "Request":
        from sprig.http.request import Request

        return Request

    if name == "Response":
        from sprig.http.response import Response

        return Response

    if name == "RoutingRequest":
        from sprig.routing.tree import RoutingRequest

        return RoutingRequest

    if name in ("CONTINUE", "Halted"):
        from sprig.routing import result as _result

        return getattr(_result, name)

    if name in ("Symbol", "sym"):
        from sprig.routing import matchers as _matchers

        return getattr(_matchers, name)

    if name in (
        "ConfigurationError",
        "FrozenAppError",
        "SprigError",
        "UnknownMatcherError",
        "UnknownRouteError",
        "UnsupportedMatcherError",
        "UnsupportedResultError",
    ):
        from sprig import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
