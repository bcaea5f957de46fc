"""Loader options — how forgiving and how much post-processing.

Options can be built in code or read from a small JSON file::

    {"normalize": true, "strict": false}

- **normalize** — convert page counts to bytes for every entry after
  parsing (see ``NumaMapEntry.normalize``).
- **strict** — raise on the first malformed property instead of
  recording a diagnostic and moving on.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


class ConfigError(Exception):
    """Raise when loader options cannot be read or are invalid."""


@dataclass(frozen=True)
class LoadOptions:
    """Settings for ``NumaMap.from_lines`` and ``read_numa_maps``."""

    normalize: bool = False
    strict: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LoadOptions:
        """Build options from a dict, rejecting unknown or non-bool values.

        Raises:
            ConfigError: If a key is unknown or a value is not a bool.

        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            msg = f"Unknown option(s): {', '.join(unknown)}"
            raise ConfigError(msg)
        for name, value in data.items():
            if not isinstance(value, bool):
                msg = f"Option {name!r} must be true or false, got {value!r}"
                raise ConfigError(msg)
        return cls(**data)

    def to_dict(self) -> dict[str, bool]:
        """Serialize to a JSON-compatible dict."""
        return {"normalize": self.normalize, "strict": self.strict}


def load_options(path: Path) -> LoadOptions:
    """Read loader options from a JSON file.

    Args:
        path: The JSON file to read.

    Returns:
        The parsed options.

    Raises:
        ConfigError: If the file cannot be read, is not a JSON object,
            or holds invalid options.

    """
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Cannot load options: {e}"
        raise ConfigError(msg) from e
    if not isinstance(data, dict):
        msg = f"Options file must hold a JSON object, got {type(data).__name__}"
        raise ConfigError(msg)
    return LoadOptions.from_dict(data)
