"""
Shared fixtures for the explorer tests.

Every test runs against a temporary bootstrap directory so that nothing
reads or writes ``~/.custom_explorer``.
"""

from pathlib import Path
from typing import List

import pytest

from custom_explorer.core import config
from custom_explorer.core.exclusion import ExclusionPredicate
from custom_explorer.core.explorer import CustomExplorer
from custom_explorer.core.node_store import NodeStore
from tests.fakes import CountingWorkspaceState, RecordingHost


@pytest.fixture(autouse=True)
def bootstrap_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect the application's bootstrap directory into ``tmp_path``."""
    path = tmp_path / "bootstrap"
    monkeypatch.setattr(config, "get_bootstrap_dir", lambda: path)
    return path


@pytest.fixture
def state(tmp_path: Path) -> CountingWorkspaceState:
    return CountingWorkspaceState(path=tmp_path / "state" / "workspace_state.json")


@pytest.fixture
def host() -> RecordingHost:
    return RecordingHost()


@pytest.fixture
def suffixes() -> List[str]:
    """Mutable excluded-suffix list read live by the exclusion predicate."""
    return []


@pytest.fixture
def store(state, host, suffixes) -> NodeStore:
    return NodeStore(state, host=host, is_excluded=ExclusionPredicate(lambda: suffixes))


@pytest.fixture
def explorer(state, host, suffixes) -> CustomExplorer:
    return CustomExplorer(state, host=host, is_excluded=ExclusionPredicate(lambda: suffixes))


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """
    A small directory tree on disk::

        project/
            a.txt
            b.meta
            .DS_Store
            sub/
                c.txt
                deeper/
                    d.txt
    """
    root = tmp_path / "project"
    (root / "sub" / "deeper").mkdir(parents=True)
    (root / "a.txt").write_text("a", encoding="utf-8")
    (root / "b.meta").write_text("b", encoding="utf-8")
    (root / ".DS_Store").write_bytes(b"\0")
    (root / "sub" / "c.txt").write_text("c", encoding="utf-8")
    (root / "sub" / "deeper" / "d.txt").write_text("d", encoding="utf-8")
    return root
