"""Bundled plugins.

Install with ``app.plugin(...)``::

    from sprig.plugins import ErrorHandler, Head, Json

    app.plugin(Head())
    app.plugin(Json())
"""

__all__ = [
    "CommonLogger",
    "ErrorHandler",
    "Head",
    "IntegerMatcherMax",
    "Json",
    "NotFound",
    "ParamsCapturing",
    "Plugin",
    "Public",
    "PublicConfig",
    "Render",
    "RenderConfig",
    "SessionConfig",
    "Sessions",
    "StatusHandler",
]

_MODULES = {
    "CommonLogger": "common_logger",
    "ErrorHandler": "error_handler",
    "Head": "head",
    "IntegerMatcherMax": "integer_matcher_max",
    "Json": "json",
    "NotFound": "status_handler",
    "ParamsCapturing": "params_capturing",
    "Plugin": "protocol",
    "Public": "public",
    "PublicConfig": "public",
    "Render": "render",
    "RenderConfig": "render",
    "SessionConfig": "sessions",
    "Sessions": "sessions",
    "StatusHandler": "status_handler",
}


def __getattr__(name: str) -> object:
    """Lazy imports so ``import sprig.plugins`` does not pull in kida or itsdangerous."""
    module = _MODULES.get(name)
    if module is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)
    from importlib import import_module

    return getattr(import_module(f"{__name__}.{module}"), name)
