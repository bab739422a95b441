"""Dispatch results.

Every dispatch call on the routing tree returns one of two values:

- ``Halted(response)`` — a block committed and the response is final
  for this request. Truthy.
- ``CONTINUE`` — nothing matched; the caller may try the next sibling.
  Falsy.

Because of the truthiness, sibling alternatives chain with ``or``::

    return r.on("users", users) or r.is_("about", about)

and a committed result unwinds through every enclosing block simply by
being returned.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, final

if TYPE_CHECKING:
    from sprig.http.response import Response


@dataclass(frozen=True, slots=True)
class Halted:
    """A committed response. Routing for this request is finished."""

    response: Response

    def __bool__(self) -> bool:
        return True


@final
class Continue:
    """No match at this point of the tree."""

    __slots__ = ()

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "CONTINUE"


CONTINUE: Final = Continue()

type Result = Halted | Continue
