"""NUMA map snapshots — save and load parsed maps as JSON.

``/proc/<pid>/numa_maps`` only exists while the process runs.  Saving
the parsed map lets you compare a process against itself later, or
inspect a capture taken on another machine:

    - ``dump_numa_map(numa_map, path)`` — write the entries as JSON.
    - ``load_numa_map(path)`` — read them back.

Diagnostics are not saved; a snapshot holds entries only.
"""

import json
from pathlib import Path

from numa_maps.numa_map import NumaMap


class PersistenceError(Exception):
    """Raise when a snapshot cannot be read or has the wrong shape."""


def dump_numa_map(numa_map: NumaMap, path: Path) -> None:
    """Save a map to a JSON file.

    Args:
        numa_map: The map to save.
        path: The file path to write to.

    """
    path.write_text(json.dumps(numa_map.to_dict(), indent=2))


def load_numa_map(path: Path) -> NumaMap:
    """Load a map from a JSON file.

    Args:
        path: The file path to read from.

    Returns:
        A reconstructed NumaMap instance.

    Raises:
        PersistenceError: If the file is missing, not JSON, or not a
            snapshot written by ``dump_numa_map``.

    """
    try:
        data = json.loads(path.read_text())
        return NumaMap.from_dict(data)
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Cannot load snapshot: {e}"
        raise PersistenceError(msg) from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        msg = f"Malformed snapshot {path}: {e!r}"
        raise PersistenceError(msg) from e
