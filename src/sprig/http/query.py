"""Multi-valued parameters from query strings and urlencoded bodies.

Bytes that do not decode are replaced rather than raised, so a client
sending a broken form body cannot fail a request that never reads it.
"""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl


class QueryParams(Mapping[str, str]):
    """Read-only parameters. Indexing gives the first value, ``get_list`` all of them."""

    __slots__ = ("_pairs", "_raw", "_values")

    def __init__(self, query_string: bytes = b"", *, encoding: str = "latin-1") -> None:
        self._raw = query_string
        self._pairs: tuple[tuple[str, str], ...] = tuple(
            parse_qsl(
                query_string.decode(encoding, errors="replace"),
                keep_blank_values=True,
                encoding=encoding,
                errors="replace",
            )
        )
        values: dict[str, list[str]] = {}
        for key, value in self._pairs:
            values.setdefault(key, []).append(value)
        self._values = values

    @classmethod
    def from_body(cls, body: bytes) -> "QueryParams":
        """Parse an ``application/x-www-form-urlencoded`` body (UTF-8)."""
        return cls(body, encoding="utf-8")

    def __getitem__(self, key: str) -> str:
        return self._values[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"QueryParams({list(self._pairs)!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._values.get(key)
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        return list(self._values.get(key, ()))

    @property
    def pairs(self) -> tuple[tuple[str, str], ...]:
        """Every ``(key, value)`` pair in the order received."""
        return self._pairs

    @property
    def raw(self) -> bytes:
        return self._raw
