"""
Configuration helpers for Custom Explorer.

Design overview
---------------
This module centralizes decisions about where the explorer keeps its
configuration and its per-workspace state on disk, and it owns the one
user-facing option the core reads: the list of excluded suffixes.

Bootstrap directory and config.json
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Configuration lives in a per-user "bootstrap" directory, following a
pattern similar to tools like conda (``~/.conda``). For this
application we use

    ~/.custom_explorer/

Inside that directory we keep a small JSON configuration file
(``config.json``)::

    {
      "excluded_suffixes": [".meta", ".pyc"],
      "state_root_dir": null
    }

``excluded_suffixes`` is read freshly on every exclusion check (the file
is small, and edits made while the application runs take effect on the
next import or add without a restart).

Workspace state
~~~~~~~~~~~~~~~
Each workspace (a directory the user has opened) gets its own state
file holding the explorer forest. State files live under
``state_root_dir`` when it is configured (for example a cloud-synced
folder), otherwise under ``~/.custom_explorer/workspaces``. Inside that
root each workspace uses a subdirectory named after a short hash of its
absolute path::

    ~/.custom_explorer/workspaces/
        3f9a0c1d2e4b5a6c/
            workspace_state.json

The rest of the application should always obtain paths via the helpers
in this module rather than hard-coding them.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

# ---------------------------------------------------------------------------
# Paths and constants
# ---------------------------------------------------------------------------

# Name of the per-user "bootstrap" directory under the home directory.
APP_DIR_NAME = ".custom_explorer"

# Name of the JSON configuration file inside the bootstrap directory.
CONFIG_FILENAME = "config.json"

# Default subdirectory of the bootstrap directory for workspace state.
DEFAULT_STATE_DIR_NAME = "workspaces"

# Name of the per-workspace key/value state file.
DEFAULT_WORKSPACE_STATE_FILENAME = "workspace_state.json"

# Key under which the forest is stored in the workspace state.
STORAGE_KEY = "customExplorerData"

# Version written into state files. Currently ignored on load.
FILE_FORMAT_VERSION = 1


# ---------------------------------------------------------------------------
# Low-level helpers for bootstrap directory and config.json
# ---------------------------------------------------------------------------


def get_bootstrap_dir() -> Path:
    """Return the per-user bootstrap directory (``~/.custom_explorer``).

    Returns:
        Path to the bootstrap directory.
    """

    return Path.home() / APP_DIR_NAME


def get_config_path() -> Path:
    """Return the full path to the JSON configuration file.

    Returns:
        Path to ``config.json`` inside the bootstrap directory.
    """

    return get_bootstrap_dir() / CONFIG_FILENAME


def _load_raw_config() -> Dict[str, Any]:
    """Load the raw configuration dictionary from disk.

    If the file does not exist or cannot be parsed, an empty dictionary
    is returned. Higher-level helpers are responsible for applying
    defaults.

    Returns:
        Parsed configuration dictionary, or an empty dict on error.
    """

    path = get_config_path()
    if not path.exists():
        return {}

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logging.warning("Ignoring unreadable config file %s: %s", path, exc)
        return {}

    if not isinstance(raw, dict):
        logging.warning("Ignoring config file %s: top level is not an object", path)
        return {}
    return raw


def _save_raw_config(cfg: Dict[str, Any]) -> None:
    """Atomically write the given configuration dictionary to disk.

    Args:
        cfg: Configuration dictionary to save.
    """

    bootstrap = get_bootstrap_dir()
    bootstrap.mkdir(parents=True, exist_ok=True)

    path = get_config_path()
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(cfg, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


# ---------------------------------------------------------------------------
# High-level configuration model
# ---------------------------------------------------------------------------


def _clean_suffixes(value: Any) -> List[str]:
    """Keep only non-empty string entries of a configured suffix list.

    An empty suffix would match every name, so it is dropped.
    """
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, str) and entry]


def _ensure_default_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Ensure that the configuration dictionary has its required keys.

    Args:
        raw: Existing configuration dictionary (possibly empty).

    Returns:
        A configuration dictionary with at least the keys
        ``excluded_suffixes`` and ``state_root_dir``.
    """

    cfg = dict(raw) if raw is not None else {}

    if "excluded_suffixes" not in cfg or not isinstance(cfg["excluded_suffixes"], list):
        cfg["excluded_suffixes"] = []

    # Unset means "use the bootstrap directory".
    if not cfg.get("state_root_dir"):
        cfg["state_root_dir"] = None

    return cfg


def load_config() -> Dict[str, Any]:
    """Load the application configuration, applying defaults as needed.

    Merges any on-disk configuration with defaults and writes the result
    back to disk if the defaults changed anything, so that the file is
    self-describing for users who want to edit it.

    Returns:
        A configuration dictionary containing at least the keys
        ``excluded_suffixes`` and ``state_root_dir``.
    """

    raw = _load_raw_config()
    cfg = _ensure_default_config(raw)

    if cfg != raw:
        try:
            _save_raw_config(cfg)
        except OSError as exc:
            logging.warning("Could not write default config to %s: %s", get_config_path(), exc)

    return cfg


def get_excluded_suffixes() -> List[str]:
    """Return the configured excluded suffixes.

    This re-reads ``config.json`` on every call.

    Returns:
        List of non-empty suffix strings such as ``[".meta", ".pyc"]``.
    """

    return _clean_suffixes(load_config().get("excluded_suffixes"))


def set_excluded_suffixes(suffixes: Sequence[str]) -> None:
    """Replace the configured excluded suffixes.

    Args:
        suffixes: New suffix list. Blank entries are dropped.
    """

    cfg = load_config()
    cfg["excluded_suffixes"] = _clean_suffixes([s.strip() for s in suffixes])
    _save_raw_config(cfg)


def get_state_root_dir() -> Path:
    """Return the directory under which per-workspace state lives.

    Returns:
        The configured ``state_root_dir`` when set, otherwise
        ``~/.custom_explorer/workspaces``.
    """

    root = load_config().get("state_root_dir")
    if root:
        return Path(root).expanduser()
    return get_bootstrap_dir() / DEFAULT_STATE_DIR_NAME


def set_state_root_dir(path: Optional[Union[str, Path]]) -> None:
    """Set (or clear, with ``None``) the ``state_root_dir`` option."""
    cfg = load_config()
    cfg["state_root_dir"] = str(path) if path else None
    _save_raw_config(cfg)


def workspace_key(workspace_dir: Union[str, Path]) -> str:
    """Return the short stable key naming a workspace's state directory."""
    absolute = os.path.abspath(os.fspath(workspace_dir))
    return hashlib.sha1(absolute.encode("utf-8")).hexdigest()[:16]


def get_workspace_state_path(workspace_dir: Union[str, Path]) -> Path:
    """Return the full path of the state file for a workspace.

    The containing directory is created if it does not already exist.

    Args:
        workspace_dir: The workspace directory the explorer is opened on.

    Returns:
        Path to ``workspace_state.json`` for that workspace.
    """

    state_dir = get_state_root_dir() / workspace_key(workspace_dir)
    state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir / DEFAULT_WORKSPACE_STATE_FILENAME
