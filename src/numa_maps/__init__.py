"""Parse Linux ``/proc/<pid>/numa_maps`` files into typed records.

Re-exports public symbols so callers can write::

    from numa_maps import read_numa_maps, NumaMapProperty
"""

from numa_maps.config import ConfigError, LoadOptions, load_options
from numa_maps.entry import LineParseResult, NumaMapEntry, TokenDiagnostic, parse_entry
from numa_maps.logging import LogEntry, Logger, LogLevel
from numa_maps.numa_map import NumaMap, NumaMapReadError, read_numa_maps
from numa_maps.persistence import PersistenceError, dump_numa_map, load_numa_map
from numa_maps.properties import (
    NumaMapProperty,
    PropertyKind,
    PropertyParseError,
    parse_property,
)

__all__ = [
    "ConfigError",
    "LineParseResult",
    "LoadOptions",
    "LogEntry",
    "LogLevel",
    "Logger",
    "NumaMap",
    "NumaMapEntry",
    "NumaMapProperty",
    "NumaMapReadError",
    "PersistenceError",
    "PropertyKind",
    "PropertyParseError",
    "TokenDiagnostic",
    "dump_numa_map",
    "load_numa_map",
    "load_options",
    "parse_entry",
    "parse_property",
    "read_numa_maps",
]
