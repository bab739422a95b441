"""Expose route captures through ``r.params``."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from sprig.routing.matchers import SymbolRef

if TYPE_CHECKING:
    from sprig.app import App
    from sprig.routing.tree import RoutingRequest


def capture_params(r: RoutingRequest, records: Sequence[tuple[Any, tuple[Any, ...]]]) -> None:
    """Store every capture under ``"captures"`` and symbol captures under the symbol name.

    Captures accumulate across nested matches, outermost first.
    """
    params = r.params
    captured = params.setdefault("captures", [])
    for matcher, values in records:
        captured.extend(values)
        if isinstance(matcher, SymbolRef) and values:
            params[matcher.symbol.name] = values[0] if len(values) == 1 else values


@dataclass(frozen=True, slots=True)
class ParamsCapturing:
    """``r.on("posts", sym.id, ...)`` also sets ``r.params["id"]``."""

    name: ClassVar[str] = "params_capturing"

    def install(self, app: App) -> None:
        app.on_match(capture_params)
