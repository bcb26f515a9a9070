import json

from custom_explorer.core import config
from custom_explorer.core.workspace_state import WorkspaceState


def test_missing_file_is_empty_state(tmp_path):
    state = WorkspaceState(path=tmp_path / "none.json")
    assert state.get("k") is None
    assert state.get("k", []) == []
    assert list(state.keys()) == []


def test_update_writes_whole_file(tmp_path):
    path = tmp_path / "sub" / "state.json"
    state = WorkspaceState(path=path)

    state.update("a", [1, 2])
    state.update("b", {"x": True})

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {"version": config.FILE_FORMAT_VERSION, "values": {"a": [1, 2], "b": {"x": True}}}
    assert not path.with_suffix(".json.tmp").exists()


def test_update_none_removes_key(tmp_path):
    state = WorkspaceState(path=tmp_path / "state.json")
    state.update("a", 1)
    state.update("a", None)

    assert "a" not in state.keys()
    assert WorkspaceState(path=tmp_path / "state.json").get("a") is None


def test_get_returns_a_copy(tmp_path):
    state = WorkspaceState(path=tmp_path / "state.json")
    state.update("a", [1])

    value = state.get("a")
    value.append(2)

    assert state.get("a") == [1]


def test_corrupt_file_is_treated_as_empty(tmp_path, caplog):
    path = tmp_path / "state.json"
    path.write_text("{broken", encoding="utf-8")

    state = WorkspaceState(path=path)

    assert list(state.keys()) == []
    assert "Could not read workspace state" in caplog.text


def test_foreign_layout_is_ignored(tmp_path, caplog):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"values": [1, 2, 3]}), encoding="utf-8")

    assert list(WorkspaceState(path=path).keys()) == []
    assert "'values' is not an object" in caplog.text


def test_reload_picks_up_external_writes(tmp_path):
    path = tmp_path / "state.json"
    state = WorkspaceState(path=path)
    WorkspaceState(path=path).update("a", "elsewhere")

    assert state.get("a") is None
    state.reload()
    assert state.get("a") == "elsewhere"


def test_default_path_comes_from_workspace_dir(tmp_path):
    state = WorkspaceState(workspace_dir=tmp_path / "ws")
    assert state.path == config.get_workspace_state_path(tmp_path / "ws")
