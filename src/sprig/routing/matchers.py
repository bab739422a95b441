"""Matcher variants and the per-app matcher registry.

Route declarations pass plain Python values as matchers. ``compile_matcher``
turns each value into one of a closed set of variants, in this order:

1. ``str``             -> ``Literal``    exact path segment(s)
2. ``type``            -> ``ClassRef``   registered class matcher (``int``, ``str``, ...)
3. ``Symbol``          -> ``SymbolRef``  registered symbol matcher
4. ``re.Pattern``      -> ``PatternRef`` anchored regex, groups are captures
5. ``True``            -> ``ALWAYS``
6. ``False`` / ``None``-> ``NEVER``
7. ``list`` / ``tuple``-> ``AnyOf``      first matching element wins
8. ``dict``            -> ``AllOf``      every hash matcher must match
9. other callables     -> ``Predicate``  called with no arguments

Anything else raises ``UnsupportedMatcherError``. Every variant is atomic:
when it fails it leaves the cursor exactly as it found it.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, Protocol

from sprig.errors import UnknownMatcherError, UnsupportedMatcherError

if TYPE_CHECKING:
    from sprig._internal.types import Converter
    from sprig.routing.tree import RoutingRequest


# Segment boundary: the next character is "/" or the path ends.
_SEGMENT_END: Final = r"(?=/|\Z)"


# -- Symbols --


@dataclass(frozen=True, slots=True)
class Symbol:
    """A named matcher looked up in the symbol registry.

    Create one directly or through the ``sym`` shorthand::

        r.on("posts", sym.d, show_post)
    """

    name: str

    def __repr__(self) -> str:
        return f"sym.{self.name}"


class _SymbolFactory:
    __slots__ = ()

    def __getattr__(self, name: str) -> Symbol:
        if name.startswith("__"):
            raise AttributeError(name)
        return Symbol(name)

    def __call__(self, name: str) -> Symbol:
        return Symbol(name)


sym: Final = _SymbolFactory()


# -- Registry entries --


@dataclass(frozen=True, slots=True)
class MatcherEntry:
    """A segment pattern and an optional converter.

    ``pattern`` consumes from the start of the remaining path;
    ``whole_pattern`` additionally requires the path to end there, for
    terminal matches. The converter receives the regex groups; returning
    ``None`` or ``False`` rejects a structurally matching segment.
    """

    pattern: re.Pattern[str]
    whole_pattern: re.Pattern[str] | None = None
    convert: Converter | None = None

    @classmethod
    def segment(
        cls,
        pattern: str | re.Pattern[str],
        convert: Converter | None = None,
    ) -> MatcherEntry:
        """Build an entry for a pattern matched after a leading ``/``.

        The pattern must stop at a segment boundary, so ``(\\d+)`` does
        not match the start of ``/12abc``.
        """
        source, flags = _source(pattern)
        return cls(
            pattern=re.compile(rf"\A/(?:{source}){_SEGMENT_END}", flags),
            whole_pattern=re.compile(rf"\A/(?:{source})\Z", flags),
            convert=convert,
        )

    @classmethod
    def raw(cls, pattern: str | re.Pattern[str], convert: Converter | None = None) -> MatcherEntry:
        """Build an entry from a pattern used as-is (it supplies its own slashes)."""
        source, flags = _source(pattern)
        return cls(
            pattern=re.compile(rf"\A(?:{source})", flags),
            whole_pattern=re.compile(rf"\A(?:{source})\Z", flags),
            convert=convert,
        )

    def then(self, convert: Converter | None) -> MatcherEntry:
        """Return an entry whose converter runs this entry's converter first.

        The combined converter short-circuits when the first one rejects.
        """
        if convert is None:
            return self
        first = self.convert
        if first is None:
            return MatcherEntry(self.pattern, self.whole_pattern, convert)

        def chained(*groups: Any) -> Any:
            value = first(*groups)
            if value is None or value is False:
                return None
            if isinstance(value, tuple):
                return convert(*value)
            return convert(value)

        return MatcherEntry(self.pattern, self.whole_pattern, chained)


def _source(pattern: str | re.Pattern[str]) -> tuple[str, int]:
    if isinstance(pattern, re.Pattern):
        return pattern.pattern, pattern.flags & ~re.UNICODE
    return pattern, 0


def _to_int(value: str) -> int:
    return int(value)


# Hand-rolled fast paths for the two built-in class matchers. The digit
# run is capped at 100 characters so a hostile path cannot force a huge
# integer parse.
BUILTIN_CLASS_MATCHERS: Final[Mapping[type, MatcherEntry]] = {
    str: MatcherEntry.segment(r"([^/]+)"),
    int: MatcherEntry.segment(r"(\d{1,100})", _to_int),
}

BUILTIN_SYMBOL_MATCHERS: Final[Mapping[str, MatcherEntry]] = {
    "d": MatcherEntry.segment(r"(\d+)"),
    "w": MatcherEntry.segment(r"(\w+)"),
    "rest": MatcherEntry.raw(r"/(.*)\Z"),
    "opt": MatcherEntry.raw(rf"(?:/([^/]+))?{_SEGMENT_END}"),
    "optd": MatcherEntry.raw(rf"(?:/(\d+))?{_SEGMENT_END}"),
}


# -- Variants --


class Matcher(Protocol):
    def match(self, r: RoutingRequest) -> bool: ...


@dataclass(frozen=True, slots=True)
class Literal:
    """Exact segment text. May contain slashes (``"api/v1"``)."""

    text: str

    def match(self, r: RoutingRequest) -> bool:
        return r.cursor.try_consume_literal(self.text)


class _EntryMatcher:
    """Shared consume logic for variants backed by a ``MatcherEntry``."""

    __slots__ = ()

    entry: MatcherEntry

    def match(self, r: RoutingRequest) -> bool:
        return r.cursor.try_consume_segment(self.entry.pattern, self.entry.convert)

    def match_whole(self, r: RoutingRequest) -> bool:
        entry = self.entry
        if entry.whole_pattern is None:
            return r.cursor.try_consume_whole(entry.pattern, entry.convert)
        return r.cursor.try_consume_segment(entry.whole_pattern, entry.convert)


@dataclass(frozen=True, slots=True)
class ClassRef(_EntryMatcher):
    cls: type
    entry: MatcherEntry


@dataclass(frozen=True, slots=True)
class SymbolRef(_EntryMatcher):
    symbol: Symbol
    entry: MatcherEntry


@dataclass(frozen=True, slots=True)
class PatternRef(_EntryMatcher):
    regex: re.Pattern[str]
    entry: MatcherEntry


@dataclass(frozen=True, slots=True)
class Const:
    """``True`` always matches and consumes nothing; ``False``/``None`` never match."""

    value: bool

    def match(self, r: RoutingRequest) -> bool:
        return self.value


ALWAYS: Final = Const(True)
NEVER: Final = Const(False)


@dataclass(frozen=True, slots=True)
class Terminal:
    """Matches only when the whole path has been consumed."""

    def match(self, r: RoutingRequest) -> bool:
        return not r.cursor.remaining


TERMINAL: Final = Terminal()


@dataclass(frozen=True, slots=True)
class AnyOf:
    """First matching option wins. A matching string option is captured."""

    options: tuple[Matcher, ...]

    def match(self, r: RoutingRequest) -> bool:
        cursor = r.cursor
        for option in self.options:
            snap = cursor.snapshot()
            if option.match(r):
                if isinstance(option, Literal):
                    cursor.push(option.text)
                return True
            cursor.restore(snap)
        return False


type HashMatcher = Callable[[RoutingRequest, Any], bool]


@dataclass(frozen=True, slots=True)
class AllOf:
    """Every ``(hash matcher, argument)`` pair must match, in insertion order."""

    pairs: tuple[tuple[str, HashMatcher, Any], ...]

    def match(self, r: RoutingRequest) -> bool:
        snap = r.cursor.snapshot()
        for _key, matcher, arg in self.pairs:
            if not matcher(r, arg):
                r.cursor.restore(snap)
                return False
        return True


@dataclass(frozen=True, slots=True)
class Predicate:
    """A zero-argument callable. A result other than ``True`` is captured."""

    func: Callable[[], Any]

    def match(self, r: RoutingRequest) -> bool:
        value = self.func()
        if not value:
            return False
        if value is not True:
            r.cursor.push(value)
        return True


# -- Built-in hash matchers --


def _match_method(r: RoutingRequest, value: str | list[str] | tuple[str, ...]) -> bool:
    methods = (value,) if isinstance(value, str) else value
    return any(r.method == m.upper() for m in methods)


def _match_all(r: RoutingRequest, value: list[Any] | tuple[Any, ...]) -> bool:
    return r.match_all(tuple(value))


def _match_header(r: RoutingRequest, name: str) -> bool:
    value = r.request.headers.get(name)
    if value is None:
        return False
    r.cursor.push(value)
    return True


def _match_regex_or_equal(r: RoutingRequest, subject: str, expected: str | re.Pattern[str]) -> bool:
    if isinstance(expected, re.Pattern):
        m = expected.search(subject)
        if m is None:
            return False
        r.cursor.push(*m.groups())
        return True
    return subject == expected


def _match_host(r: RoutingRequest, host: str | re.Pattern[str]) -> bool:
    return _match_regex_or_equal(r, r.request.host, host)


def _match_user_agent(r: RoutingRequest, pattern: str | re.Pattern[str]) -> bool:
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    return _match_regex_or_equal(r, r.request.user_agent, pattern)


def _match_accept(r: RoutingRequest, mimetype: str) -> bool:
    accept = r.request.headers.get("accept") or ""
    offered = (item.split(";")[0].strip() for item in accept.split(","))
    if mimetype not in offered:
        return False
    r.response.headers["content-type"] = mimetype
    return True


def _match_param(r: RoutingRequest, key: str) -> bool:
    value = r.params.get(key)
    if value is None:
        return False
    r.cursor.push(value)
    return True


def _match_param_present(r: RoutingRequest, key: str) -> bool:
    value = r.params.get(key)
    if value is None or value == "":
        return False
    r.cursor.push(value)
    return True


BUILTIN_HASH_MATCHERS: Final[Mapping[str, HashMatcher]] = {
    "method": _match_method,
    "all": _match_all,
    "header": _match_header,
    "host": _match_host,
    "user_agent": _match_user_agent,
    "accept": _match_accept,
    "param": _match_param,
    "param!": _match_param_present,
}


# -- Registry --


class MatcherRegistry:
    """Immutable lookup tables plus a memoized regex compiler.

    Built once per app snapshot. The only state that changes at request
    time is the regex cache, which is guarded by a lock on misses.
    """

    __slots__ = ("_lock", "_pattern_cache", "classes", "hash_matchers", "symbols")

    def __init__(
        self,
        classes: Mapping[type, MatcherEntry],
        symbols: Mapping[str, MatcherEntry],
        hash_matchers: Mapping[str, HashMatcher],
    ) -> None:
        self.classes = classes
        self.symbols = symbols
        self.hash_matchers = hash_matchers
        self._pattern_cache: dict[re.Pattern[str], PatternRef] = {}
        self._lock = threading.Lock()

    def compile(self, value: Any) -> Matcher:
        """Turn a raw matcher value into a variant. See the module docstring."""
        if isinstance(value, str):
            return Literal(value)
        if isinstance(value, type):
            entry = self.classes.get(value)
            if entry is None:
                msg = f"no class matcher registered for {value.__qualname__}"
                raise UnknownMatcherError(msg)
            return ClassRef(value, entry)
        if isinstance(value, Symbol):
            entry = self.symbols.get(value.name)
            if entry is None:
                msg = f"no symbol matcher registered for {value!r}"
                raise UnknownMatcherError(msg)
            return SymbolRef(value, entry)
        if isinstance(value, re.Pattern):
            return self._compile_pattern(value)
        if value is True:
            return ALWAYS
        if value is False or value is None:
            return NEVER
        if isinstance(value, (list, tuple)):
            return AnyOf(tuple(self.compile(item) for item in value))
        if isinstance(value, dict):
            return AllOf(tuple(self._hash_pair(key, arg) for key, arg in value.items()))
        if callable(value):
            return Predicate(value)
        raise UnsupportedMatcherError(value)

    def _hash_pair(self, key: Any, arg: Any) -> tuple[str, HashMatcher, Any]:
        matcher = self.hash_matchers.get(key) if isinstance(key, str) else None
        if matcher is None:
            raise UnsupportedMatcherError({key: arg})
        return key, matcher, arg

    def _compile_pattern(self, regex: re.Pattern[str]) -> PatternRef:
        cached = self._pattern_cache.get(regex)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._pattern_cache.get(regex)
            if cached is None:
                cached = PatternRef(regex, MatcherEntry.segment(regex))
                self._pattern_cache[regex] = cached
            return cached

    @property
    def cached_patterns(self) -> int:
        return len(self._pattern_cache)
