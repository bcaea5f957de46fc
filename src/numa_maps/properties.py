"""NUMA map properties — the typed vocabulary of a ``numa_maps`` line.

Every line of ``/proc/<pid>/numa_maps`` after the address and policy is
a run of whitespace-separated tokens, each either a bare keyword
(``heap``) or a ``key=value`` pair (``anon=5``, ``N0=12``).  The kernel
documents a fixed set of keys (see ``man 7 numa``), so instead of
keeping the raw strings we classify each token into a typed property.

Most properties count **pages**.  The ``kernelpagesize_kB`` property
tells us how big a page is for that range, which lets a later pass turn
page counts into byte counts (see ``NumaMapEntry.normalize``).

Design choices:
    - **One frozen dataclass with a kind tag** rather than a class per
      key.  The tag is an ``IntEnum`` so sorting properties sorts by
      kind first, then by payload.
    - **Factory classmethods** (``NumaMapProperty.anon(5)``) are the
      only sensible way to build a property; unused payload fields keep
      neutral defaults so equality and ordering stay structural.
    - **A dispatch table for counters** — seven keys share one grammar,
      so they live in ``COUNTER_KEYS`` instead of seven branches.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any

MAX_UNSIGNED: int = 2**64 - 1
"""Largest value a count, node index or address may take."""

KIB: int = 1024
"""Bytes per kibibyte; ``kernelpagesize_kB`` is reported in KiB."""

_DIGITS_RE: dict[int, re.Pattern[str]] = {
    10: re.compile(r"\+?[0-9]+"),
    16: re.compile(r"\+?[0-9a-fA-F]+"),
}

_MAX_DIGITS: dict[int, int] = {10: len(str(MAX_UNSIGNED)), 16: len(f"{MAX_UNSIGNED:x}")}
"""Significant digits in ``MAX_UNSIGNED``; anything longer cannot fit."""


class PropertyKind(IntEnum):
    """Identify which attribute a property describes.

    The numeric values fix the canonical sort order of properties.
    """

    FILE = 0
    N = 1
    HEAP = 2
    STACK = 3
    HUGE = 4
    ANON = 5
    DIRTY = 6
    MAPPED = 7
    MAPMAX = 8
    SWAPCACHE = 9
    ACTIVE = 10
    WRITEBACK = 11
    KERNELPAGESIZE = 12


COUNTER_KEYS: dict[str, PropertyKind] = {
    "anon": PropertyKind.ANON,
    "dirty": PropertyKind.DIRTY,
    "mapped": PropertyKind.MAPPED,
    "mapmax": PropertyKind.MAPMAX,
    "swapcache": PropertyKind.SWAPCACHE,
    "active": PropertyKind.ACTIVE,
    "writeback": PropertyKind.WRITEBACK,
}
"""Map each ``key=<count>`` token to the kind it produces."""

FLAG_KEYS: dict[str, PropertyKind] = {
    "heap": PropertyKind.HEAP,
    "stack": PropertyKind.STACK,
    "huge": PropertyKind.HUGE,
}
"""Bare keywords that mark the role of a range."""

PAGE_SIZE_KEY = "kernelpagesize_kB"

_KEY_FOR_KIND: dict[PropertyKind, str] = {
    **{kind: key for key, kind in COUNTER_KEYS.items()},
    **{kind: key for key, kind in FLAG_KEYS.items()},
    PropertyKind.FILE: "file",
    PropertyKind.KERNELPAGESIZE: PAGE_SIZE_KEY,
}

SCALED_KINDS: frozenset[PropertyKind] = frozenset(
    {
        PropertyKind.N,
        PropertyKind.ANON,
        PropertyKind.DIRTY,
        PropertyKind.MAPPED,
        PropertyKind.SWAPCACHE,
        PropertyKind.ACTIVE,
        PropertyKind.WRITEBACK,
    }
)
"""Kinds whose value is a page count and is multiplied by the page size.

``MAPMAX`` counts processes, not pages, and never scales.
"""


class PropertyParseError(Exception):
    """Raise when a single numa_maps token cannot be parsed.

    Attributes:
        token: The whole offending token, as it appeared on the line.
        field: The part that failed (``"key"``, ``"node"``, ``"count"``...).
        raw: The raw text of that part.

    """

    def __init__(self, message: str, *, token: str, field: str, raw: str) -> None:
        """Create a parse error for *token* naming the bad *field*."""
        super().__init__(message)
        self.token = token
        self.field = field
        self.raw = raw


def parse_unsigned(text: str, *, field: str, token: str, base: int = 10) -> int:
    """Parse *text* as an unsigned integer that fits in 64 bits.

    Python's ``int()`` is more lenient than the kernel's output format
    (it accepts whitespace, underscores and ``0x`` prefixes), so the
    digits are checked against a strict pattern first.  Leading zeros
    are allowed in any number.

    Raises:
        PropertyParseError: If *text* is empty, signed, not numeric,
            or too large.

    """
    if _DIGITS_RE[base].fullmatch(text) is None:
        msg = f"invalid {field} {text!r} in {token!r}"
        raise PropertyParseError(msg, token=token, field=field, raw=text)
    digits = text.removeprefix("+").lstrip("0") or "0"
    # Checking the length first keeps int() away from huge digit strings.
    if len(digits) > _MAX_DIGITS[base] or int(digits, base) > MAX_UNSIGNED:
        msg = f"{field} {text!r} out of range in {token!r}"
        raise PropertyParseError(msg, token=token, field=field, raw=text)
    return int(digits, base)


@dataclass(frozen=True, order=True)
class NumaMapProperty:
    """One recognized attribute of a memory range.

    Fields compare in declaration order, so sorting a list of
    properties groups them by ``kind`` and then by payload.
    """

    kind: PropertyKind
    node: int = 0
    """NUMA node index; only meaningful for ``N``."""

    value: int = 0
    """Page count, byte count (after normalizing) or page size in bytes."""

    path: str = ""
    """Backing file; only meaningful for ``FILE``."""

    # -- Factories -------------------------------------------------------------

    @classmethod
    def file(cls, path: str) -> NumaMapProperty:
        """Return a ``file=<path>`` property."""
        return cls(PropertyKind.FILE, path=path)

    @classmethod
    def n(cls, node: int, count: int) -> NumaMapProperty:
        """Return an ``N<node>=<count>`` property."""
        return cls(PropertyKind.N, node=node, value=count)

    @classmethod
    def heap(cls) -> NumaMapProperty:
        """Return the ``heap`` flag."""
        return cls(PropertyKind.HEAP)

    @classmethod
    def stack(cls) -> NumaMapProperty:
        """Return the ``stack`` flag."""
        return cls(PropertyKind.STACK)

    @classmethod
    def huge(cls) -> NumaMapProperty:
        """Return the ``huge`` flag."""
        return cls(PropertyKind.HUGE)

    @classmethod
    def anon(cls, count: int) -> NumaMapProperty:
        """Return an ``anon=<count>`` property."""
        return cls(PropertyKind.ANON, value=count)

    @classmethod
    def dirty(cls, count: int) -> NumaMapProperty:
        """Return a ``dirty=<count>`` property."""
        return cls(PropertyKind.DIRTY, value=count)

    @classmethod
    def mapped(cls, count: int) -> NumaMapProperty:
        """Return a ``mapped=<count>`` property."""
        return cls(PropertyKind.MAPPED, value=count)

    @classmethod
    def mapmax(cls, count: int) -> NumaMapProperty:
        """Return a ``mapmax=<count>`` property."""
        return cls(PropertyKind.MAPMAX, value=count)

    @classmethod
    def swapcache(cls, count: int) -> NumaMapProperty:
        """Return a ``swapcache=<count>`` property."""
        return cls(PropertyKind.SWAPCACHE, value=count)

    @classmethod
    def active(cls, count: int) -> NumaMapProperty:
        """Return an ``active=<count>`` property."""
        return cls(PropertyKind.ACTIVE, value=count)

    @classmethod
    def writeback(cls, count: int) -> NumaMapProperty:
        """Return a ``writeback=<count>`` property."""
        return cls(PropertyKind.WRITEBACK, value=count)

    @classmethod
    def kernelpagesize(cls, size_bytes: int) -> NumaMapProperty:
        """Return a page-size property holding *size_bytes* (not KiB)."""
        return cls(PropertyKind.KERNELPAGESIZE, value=size_bytes)

    # -- Queries ---------------------------------------------------------------

    def page_size(self) -> int | None:
        """Return the page size in bytes, or None for any other kind."""
        if self.kind is PropertyKind.KERNELPAGESIZE:
            return self.value
        return None

    def normalize(self, page_size: int) -> NumaMapProperty | None:
        """Return this property with page counts converted to bytes.

        Counters are multiplied by *page_size*; files, flags and
        ``mapmax`` come back unchanged.  The page-size property itself
        has no normalized form and returns None.
        """
        if self.kind is PropertyKind.KERNELPAGESIZE:
            return None
        if self.kind in SCALED_KINDS:
            return replace(self, value=self.value * page_size)
        return self

    def to_token(self) -> str:
        """Render the property back into its ``numa_maps`` token."""
        match self.kind:
            case PropertyKind.N:
                return f"N{self.node}={self.value}"
            case PropertyKind.FILE:
                return f"file={self.path}"
            case PropertyKind.HEAP | PropertyKind.STACK | PropertyKind.HUGE:
                return _KEY_FOR_KIND[self.kind]
            case PropertyKind.KERNELPAGESIZE:
                return f"{PAGE_SIZE_KEY}={self.value // KIB}"
            case _:
                return f"{_KEY_FOR_KIND[self.kind]}={self.value}"

    # -- Serialization ---------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, omitting unused payload."""
        data: dict[str, Any] = {"kind": self.kind.name.lower()}
        match self.kind:
            case PropertyKind.FILE:
                data["path"] = self.path
            case PropertyKind.N:
                data["node"] = self.node
                data["value"] = self.value
            case PropertyKind.HEAP | PropertyKind.STACK | PropertyKind.HUGE:
                pass
            case _:
                data["value"] = self.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NumaMapProperty:
        """Reconstruct a property from ``to_dict`` output.

        Raises:
            KeyError: If ``kind`` is missing or unknown.
            TypeError: If ``kind`` or a payload field has the wrong type.
            ValueError: If ``node`` or ``value`` is negative.

        """
        kind = data["kind"]
        if not isinstance(kind, str):
            msg = f"kind must be a string, got {kind!r}"
            raise TypeError(msg)
        path = data.get("path", "")
        if not isinstance(path, str):
            msg = f"path must be a string, got {path!r}"
            raise TypeError(msg)
        return cls(
            PropertyKind[kind.upper()],
            node=check_unsigned(data.get("node", 0), "node"),
            value=check_unsigned(data.get("value", 0), "value"),
            path=path,
        )


def check_unsigned(value: object, name: str) -> int:
    """Return *value* if it is a non-negative int (bools excluded).

    Raises:
        TypeError: If *value* is not an int.
        ValueError: If *value* is negative or wider than 64 bits.

    """
    if not isinstance(value, int) or isinstance(value, bool):
        msg = f"{name} must be an integer, got {value!r}"
        raise TypeError(msg)
    if not 0 <= value <= MAX_UNSIGNED:
        msg = f"{name} {value} out of range"
        raise ValueError(msg)
    return value


def parse_property(token: str) -> NumaMapProperty:
    """Classify one ``key`` or ``key=value`` token.

    Args:
        token: A single whitespace-free token from a numa_maps line.

    Returns:
        The typed property the token describes.

    Raises:
        PropertyParseError: If the key is unknown or a number is malformed.

    """
    key, sep, val = token.partition("=")
    value = val if sep else None

    if key.startswith("N") and value is not None:
        node = parse_unsigned(key[1:], field="node", token=token)
        count = parse_unsigned(value, field="count", token=token)
        return NumaMapProperty.n(node, count)
    if key == "file" and value is not None:
        return NumaMapProperty.file(value)
    if key in FLAG_KEYS:
        return NumaMapProperty(FLAG_KEYS[key])
    if key in COUNTER_KEYS and value is not None:
        count = parse_unsigned(value, field=key, token=token)
        return NumaMapProperty(COUNTER_KEYS[key], value=count)
    if key == PAGE_SIZE_KEY and value is not None:
        kib = parse_unsigned(value, field=key, token=token)
        return NumaMapProperty.kernelpagesize(kib * KIB)

    if value is None:
        msg = f"unknown key: {key}"
    else:
        msg = f"unknown key/value: {key}={value}"
    raise PropertyParseError(msg, token=token, field="key", raw=key)
