"""
Workspace-scoped key/value storage.

Design overview
---------------
The explorer keeps all of its persistent state in a single JSON file per
workspace (see ``custom_explorer.core.config.get_workspace_state_path``).
The file is a plain key/value mapping, wrapped with a format version:

.. code-block:: json

    {
      "values": {
        "customExplorerData": [ ... ]
      },
      "version": 1
    }

``WorkspaceState`` reads the file once when constructed and keeps the
mapping in memory. ``get()`` is served from memory; ``update()`` changes
one key and rewrites the whole file atomically (write to a temporary
file, then replace), so a crash while saving never leaves a half-written
state file behind.

A missing or unreadable file is treated as empty state. That keeps a
corrupted file from blocking startup; the next save overwrites it.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from custom_explorer.core import config


def _decode_values(raw: Any, path: Path) -> Dict[str, Any]:
    """
    Decode the ``values`` mapping from a raw JSON object.

    Tolerant of unexpected shapes so that partially written or foreign
    files do not cause hard failures.

    Args:
        raw (Any): Raw object decoded from disk.
        path (Path): File the object came from, for log messages.

    Returns:
        Dict[str, Any]: The stored key/value pairs, or an empty dict.
    """
    if not isinstance(raw, Mapping):
        logging.warning("Ignoring workspace state %s: top level is not an object", path)
        return {}

    values = raw.get("values", {})
    if not isinstance(values, Mapping):
        logging.warning("Ignoring workspace state %s: 'values' is not an object", path)
        return {}

    return {key: value for key, value in values.items() if isinstance(key, str)}


class WorkspaceState:
    """
    JSON-file backed key/value store for one workspace.

    Args:
        path: Explicit state file. When omitted,
            ``config.get_workspace_state_path(workspace_dir)`` is used.
        workspace_dir: Workspace directory used to derive the default
            path. Defaults to the current working directory.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        workspace_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        if path is not None:
            self._path = Path(path)
        else:
            self._path = config.get_workspace_state_path(workspace_dir or Path.cwd())
        self._values: Dict[str, Any] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            # On any I/O or JSON error, fall back to empty state.
            logging.warning("Could not read workspace state %s: %s", self._path, exc)
            return {}
        return _decode_values(raw, self._path)

    def keys(self) -> Iterable[str]:
        return list(self._values)

    def get(self, key: str, default: Any = None) -> Any:
        """Return a deep copy of the stored value, or ``default``."""
        if key not in self._values:
            return default
        return copy.deepcopy(self._values[key])

    def update(self, key: str, value: Any) -> None:
        """
        Store ``value`` under ``key`` and rewrite the state file.

        Passing ``None`` removes the key.

        Args:
            key (str): Storage key.
            value (Any): JSON-serializable value.
        """
        if value is None:
            self._values.pop(key, None)
        else:
            self._values[key] = copy.deepcopy(value)
        self._write()

    def reload(self) -> None:
        """Re-read the state file, discarding the in-memory copy."""
        self._values = self._load()

    def _write(self) -> None:
        if self._path.parent and not self._path.parent.exists():
            self._path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": config.FILE_FORMAT_VERSION,
            "values": self._values,
        }
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
        tmp.replace(self._path)
