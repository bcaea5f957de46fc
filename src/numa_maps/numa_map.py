"""NUMA maps — a whole ``/proc/<pid>/numa_maps`` file.

Loading walks the lines in order and hands each one to ``parse_entry``:

- a line with an address and policy becomes a ``NumaMapEntry``;
- a line without one (a blank trailing line, say) is skipped;
- a bad property on an otherwise good line becomes a ``TokenDiagnostic``
  stored on the map and, if a ``Logger`` was given, a WARNING entry.

Only a failure to *read* the lines aborts the load.  It surfaces as a
``NumaMapReadError`` and no partial map is returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from numa_maps.config import LoadOptions
from numa_maps.entry import NumaMapEntry, TokenDiagnostic, parse_entry
from numa_maps.logging import Logger, LogLevel

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

LOG_SOURCE = "numa_maps"


class NumaMapReadError(Exception):
    """Raise when the lines of a numa_maps source cannot be read."""


@dataclass
class NumaMap:
    """Every memory range of one process, in file order."""

    entries: list[NumaMapEntry] = field(default_factory=list)
    diagnostics: list[TokenDiagnostic] = field(default_factory=list)

    @classmethod
    def from_lines(
        cls,
        lines: Iterable[str],
        *,
        options: LoadOptions | None = None,
        logger: Logger | None = None,
    ) -> NumaMap:
        """Build a map from an ordered source of text lines.

        Args:
            lines: Any iterable of lines, e.g. an open text file.
            options: Loader options; defaults to ``LoadOptions()``.
            logger: Receives skipped lines and bad properties.

        Returns:
            A map with one entry per line that has an address and policy.

        Raises:
            NumaMapReadError: If iterating *lines* fails.
            PropertyParseError: If ``options.strict`` is set and a
                property is malformed.

        """
        opts = options if options is not None else LoadOptions()
        numa_map = cls()
        try:
            for line_number, line in enumerate(lines, start=1):
                numa_map._add_line(line, line_number, opts, logger)
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Cannot read numa_maps: {e}"
            raise NumaMapReadError(msg) from e
        if logger is not None:
            logger.log(
                LogLevel.INFO,
                f"Loaded {len(numa_map.entries)} entries "
                f"({len(numa_map.diagnostics)} bad properties)",
                source=LOG_SOURCE,
            )
        return numa_map

    def _add_line(
        self,
        line: str,
        line_number: int,
        options: LoadOptions,
        logger: Logger | None,
    ) -> None:
        """Parse one line and record its entry and diagnostics."""
        result = parse_entry(line, line_number=line_number, strict=options.strict)
        if result.entry is None:
            if logger is not None and line.strip():
                logger.log(
                    LogLevel.DEBUG,
                    "Skipped line without address or policy",
                    source=LOG_SOURCE,
                    line_number=line_number,
                )
            return
        for diagnostic in result.diagnostics:
            if logger is not None:
                logger.log(
                    LogLevel.WARNING,
                    str(diagnostic),
                    source=LOG_SOURCE,
                    line_number=line_number,
                )
        self.diagnostics.extend(result.diagnostics)
        if options.normalize:
            result.entry.normalize()
        self.entries.append(result.entry)

    def normalize(self) -> None:
        """Normalize every entry in place."""
        for entry in self.entries:
            entry.normalize()

    def node_totals(self) -> dict[int, int]:
        """Sum the ``N<node>`` values of all entries, keyed by node.

        Units follow the entries: pages before normalizing, bytes after.
        """
        totals: dict[int, int] = {}
        for entry in self.entries:
            for node, size in entry.node_sizes().items():
                totals[node] = totals.get(node, 0) + size
        return dict(sorted(totals.items()))

    def to_dict(self) -> dict[str, Any]:
        """Serialize the entries to a JSON-compatible dict."""
        return {"entries": [entry.to_dict() for entry in self.entries]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NumaMap:
        """Reconstruct a map from ``to_dict`` output."""
        return cls(entries=[NumaMapEntry.from_dict(e) for e in data.get("entries", [])])

    def __len__(self) -> int:
        """Return the number of entries."""
        return len(self.entries)

    def __iter__(self) -> Iterator[NumaMapEntry]:
        """Iterate over the entries in file order."""
        return iter(self.entries)


def read_numa_maps(
    path: str | Path,
    *,
    options: LoadOptions | None = None,
    logger: Logger | None = None,
) -> NumaMap:
    """Read and parse a numa_maps file.

    Args:
        path: The file to read, e.g. ``"/proc/self/numa_maps"``.
        options: Loader options; defaults to ``LoadOptions()``.
        logger: Receives skipped lines and bad properties.

    Returns:
        The parsed map.

    Raises:
        NumaMapReadError: If the file cannot be opened or read.

    """
    try:
        with Path(path).open(encoding="utf-8") as f:
            return NumaMap.from_lines(f, options=options, logger=logger)
    except OSError as e:
        msg = f"Cannot open {path}: {e}"
        raise NumaMapReadError(msg) from e
