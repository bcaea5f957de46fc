"""NUMA map entries — one memory range per ``numa_maps`` line.

A line of ``/proc/<pid>/numa_maps`` looks like::

    7fbd0c10f000 default anon=5 dirty=5 active=1 N0=5 kernelpagesize_kB=4

- The first token is the start address of the range, in hex.
- The second is the memory policy (``default``, ``interleave:0-3``...).
- Everything after that is a property (see ``numa_maps.properties``).

Parsing is tiered.  A line without a valid address or policy produces
no entry at all.  A single bad property produces a ``TokenDiagnostic``
and is skipped; the rest of the line is still parsed.

Normalizing an entry turns page counts into byte counts using the
range's own ``kernelpagesize_kB``, so ranges backed by huge pages and
ranges backed by 4 KiB pages can be compared directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from numa_maps.properties import (
    NumaMapProperty,
    PropertyKind,
    PropertyParseError,
    check_unsigned,
    parse_property,
    parse_unsigned,
)


@dataclass(frozen=True)
class TokenDiagnostic:
    """Describe one property token that could not be parsed.

    Attributes:
        token: The offending token, verbatim.
        message: Why it was rejected.
        line_number: The 1-based input line, when known.

    """

    token: str
    message: str
    line_number: int | None = None

    def __str__(self) -> str:
        """Format like the kernel-style ``Failed to parse`` message."""
        return f'Failed to parse numa_maps entry "{self.token}": {self.message}'


@dataclass(order=True)
class NumaMapEntry:
    """One memory range: its address, policy and properties."""

    address: int
    policy: str
    properties: list[NumaMapProperty] = field(default_factory=list)

    @classmethod
    def parse(cls, line: str) -> NumaMapEntry | None:
        """Parse *line*, discarding diagnostics.

        Returns:
            The entry, or None if the line has no address or policy.

        """
        return parse_entry(line).entry

    def page_size(self) -> int | None:
        """Return the first page size found in the properties, if any."""
        for prop in self.properties:
            size = prop.page_size()
            if size is not None:
                return size
        return None

    def normalize(self) -> None:
        """Convert page counts to byte counts in place.

        Uses the first ``kernelpagesize_kB`` property as the page size.
        Every page-size property is dropped and the remaining
        properties are sorted.  Without a page size this is a no-op,
        which also makes a second call a no-op.
        """
        page_size = self.page_size()
        if page_size is None:
            return
        normalized = (prop.normalize(page_size) for prop in self.properties)
        self.properties = sorted(prop for prop in normalized if prop is not None)

    def node_sizes(self) -> dict[int, int]:
        """Return the ``N<node>`` values of this range keyed by node."""
        sizes: dict[int, int] = {}
        for prop in self.properties:
            if prop.kind is PropertyKind.N:
                sizes[prop.node] = sizes.get(prop.node, 0) + prop.value
        return sizes

    def to_line(self) -> str:
        """Render the entry back into a ``numa_maps`` line."""
        parts = [f"{self.address:x}", self.policy]
        parts.extend(prop.to_token() for prop in self.properties)
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "address": self.address,
            "policy": self.policy,
            "properties": [prop.to_dict() for prop in self.properties],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NumaMapEntry:
        """Reconstruct an entry from ``to_dict`` output.

        Raises:
            KeyError: If ``address`` or ``policy`` is missing.
            TypeError: If a field has the wrong type.
            ValueError: If ``address`` is negative or too large.

        """
        policy = data["policy"]
        if not isinstance(policy, str):
            msg = f"policy must be a string, got {policy!r}"
            raise TypeError(msg)
        return cls(
            address=check_unsigned(data["address"], "address"),
            policy=policy,
            properties=[NumaMapProperty.from_dict(p) for p in data.get("properties", [])],
        )


@dataclass(frozen=True)
class LineParseResult:
    """Capture the outcome of parsing one line.

    ``entry`` is None when the line has no usable address or policy;
    ``diagnostics`` lists every property token that was skipped.
    """

    entry: NumaMapEntry | None
    diagnostics: tuple[TokenDiagnostic, ...] = ()


def parse_entry(
    line: str,
    *,
    line_number: int | None = None,
    strict: bool = False,
) -> LineParseResult:
    """Parse one ``numa_maps`` line.

    Args:
        line: The raw line; surrounding whitespace and the newline are fine.
        line_number: Recorded on each diagnostic when given.
        strict: Re-raise the first bad property instead of skipping it.

    Returns:
        The parsed entry (or None) together with any token diagnostics.

    Raises:
        PropertyParseError: Only when *strict* is set.

    """
    tokens = line.split()
    if len(tokens) < 2:  # noqa: PLR2004
        return LineParseResult(entry=None)
    address_text, policy, *rest = tokens
    try:
        address = parse_unsigned(address_text, field="address", token=address_text, base=16)
    except PropertyParseError:
        return LineParseResult(entry=None)

    properties: list[NumaMapProperty] = []
    diagnostics: list[TokenDiagnostic] = []
    for token in rest:
        try:
            properties.append(parse_property(token))
        except PropertyParseError as e:
            if strict:
                raise
            diagnostics.append(TokenDiagnostic(token, str(e), line_number))

    entry = NumaMapEntry(address=address, policy=policy, properties=properties)
    return LineParseResult(entry=entry, diagnostics=tuple(diagnostics))
