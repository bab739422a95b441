"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups. Plugins carry their own config dataclasses.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, threaded_dispatch=True)
    """

    debug: bool = False

    # Freeze on the first request (or lifespan startup). With False the
    # app rebuilds its runtime snapshot after every registration change,
    # which keeps hot-reload workflows usable during development.
    auto_freeze: bool = True

    # Run the synchronous routing tree in a worker thread so blocking
    # route blocks do not stall the event loop.
    threaded_dispatch: bool = False

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    # Responses
    default_content_type: str = "text/html; charset=utf-8"

    # Security (default secret for the Sessions plugin)
    secret_key: str = ""
