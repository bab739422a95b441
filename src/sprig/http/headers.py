"""Case-insensitive HTTP headers.

``Headers`` is the immutable inbound view over the raw ASGI byte pairs.
``ResponseHeaders`` is the mutable outbound mapping that route blocks and
after hooks edit in place.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive inbound HTTP headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns all values for a header.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", raw)

    @classmethod
    def from_mapping(cls, headers: Mapping[str, str] | None) -> Headers:
        """Build headers from a plain ``{name: value}`` mapping."""
        if not headers:
            return cls()
        return cls(
            tuple(
                (name.lower().encode("latin-1"), value.encode("latin-1"))
                for name, value in headers.items()
            )
        )

    def __getitem__(self, key: str) -> str:
        key_lower = key.lower().encode("latin-1")
        for name, value in self._raw:
            if name.lower() == key_lower:
                return value.decode("latin-1")
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key_lower = key.lower().encode("latin-1")
        return any(name.lower() == key_lower for name, _ in self._raw)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._raw:
            key = name.decode("latin-1").lower()
            if key not in seen:
                seen.add(key)
                yield key

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        key_lower = key.lower().encode("latin-1")
        return [value.decode("latin-1") for name, value in self._raw if name.lower() == key_lower]

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """Access raw header byte pairs for ASGI compatibility."""
        return self._raw


type HeaderValue = str | list[str]


class ResponseHeaders(MutableMapping[str, HeaderValue]):
    """Mutable, case-insensitive outbound headers.

    Keys are stored lower-cased. A value is either a single string or a
    list of strings for headers that repeat (``Set-Cookie``).
    """

    __slots__ = ("_data",)

    def __init__(self, initial: Mapping[str, HeaderValue] | None = None) -> None:
        self._data: dict[str, HeaderValue] = {}
        if initial:
            self.update(initial)

    def __getitem__(self, key: str) -> HeaderValue:
        return self._data[key.lower()]

    def __setitem__(self, key: str, value: HeaderValue) -> None:
        self._data[key.lower()] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"ResponseHeaders({self._data!r})"

    def add(self, key: str, value: str) -> None:
        """Append *value*, turning the header into a list when it repeats."""
        current = self._data.get(key.lower())
        if current is None:
            self._data[key.lower()] = value
        elif isinstance(current, list):
            current.append(value)
        else:
            self._data[key.lower()] = [current, value]

    def pairs(self) -> Iterable[tuple[str, str]]:
        """Yield ``(name, value)`` pairs, expanding list values."""
        for name, value in self._data.items():
            if isinstance(value, list):
                for item in value:
                    yield name, item
            else:
                yield name, value
