from pathlib import Path

from custom_explorer.core.explorer import OPEN_COMMAND
from custom_explorer.core.models import CollapsibleState, Severity


class ScriptedPrompt:
    """Prompt returning canned answers and recording what it was asked."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.asked = []

    def __call__(self, message, default):
        self.asked.append((message, default))
        return self.answers.pop(0)


def test_add_root_group_from_prompt(explorer):
    prompt = ScriptedPrompt("  Docs  ")

    group = explorer.add_root_group(prompt)

    assert group.label == "Docs"
    assert explorer.get_children() == [group]
    assert prompt.asked == [("Enter root group name", "")]


def test_cancelled_or_blank_prompt_changes_nothing(explorer, state, host):
    assert explorer.add_root_group(ScriptedPrompt(None)) is None
    assert explorer.add_root_group(ScriptedPrompt("   ")) is None

    assert explorer.get_children() == []
    assert state.update_calls == 0
    assert host.refreshes == []


def test_add_group_nests_under_node(explorer):
    parent = explorer.add_root_group(ScriptedPrompt("parent"))

    child = explorer.add_group(parent, ScriptedPrompt("child"))

    assert explorer.get_children(parent) == [child]
    assert explorer.get_parent(child) is parent


def test_rename_prefills_current_label(explorer):
    node = explorer.add_root_group(ScriptedPrompt("old"))
    prompt = ScriptedPrompt("new")

    assert explorer.rename_entry(node, prompt)

    assert node.label == "new"
    assert prompt.asked == [("Enter new name", "old")]


def test_rename_to_same_label_is_a_no_op(explorer, state):
    node = explorer.add_root_group(ScriptedPrompt("same"))
    writes = state.update_calls

    assert not explorer.rename_entry(node, ScriptedPrompt("same"))
    assert state.update_calls == writes


def test_tree_item_for_file(explorer, workspace):
    path = str(workspace / "a.txt")
    explorer.add_files([path])
    [node] = explorer.get_children()

    item = explorer.get_tree_item(node)

    assert item.label == "a.txt"
    assert item.context_value == "file"
    assert item.collapsible_state is CollapsibleState.NONE
    assert item.command == (OPEN_COMMAND, path)
    assert item.resource_uri == Path(path).as_uri()
    assert not item.folder_icon
    assert item.severity is Severity.NONE


def test_tree_item_for_group(explorer):
    group = explorer.add_root_group(ScriptedPrompt("g"))

    item = explorer.get_tree_item(group)

    assert item.context_value == "group"
    assert item.collapsible_state is CollapsibleState.EXPANDED
    assert item.folder_icon
    assert item.command is None


def test_presentation_id_changes_on_collapse(explorer):
    group = explorer.add_root_group(ScriptedPrompt("g"))
    before = explorer.get_tree_item(group).id

    explorer.collapse_all()
    after = explorer.get_tree_item(group)

    assert after.id != before
    assert after.id.startswith(group.id)
    assert after.collapsible_state is CollapsibleState.COLLAPSED

    explorer.expand_all()
    assert explorer.get_tree_item(group).collapsible_state is CollapsibleState.EXPANDED


def test_remove_entries_is_one_refresh(explorer, host, workspace):
    explorer.add_files([str(workspace / "a.txt"), str(workspace / "b.meta")])
    nodes = explorer.get_children()
    host.refreshes.clear()

    assert explorer.remove_entries(nodes) == 2
    assert explorer.get_children() == []
    assert host.refreshes == [None]


def test_import_directory_command(explorer, workspace, suffixes):
    suffixes.append(".meta")
    group = explorer.import_directory(str(workspace))

    assert [n.label for n in explorer.get_children(group)] == ["sub", "a.txt"]


def test_drag_and_drop_through_facade(explorer):
    target = explorer.add_root_group(ScriptedPrompt("target"))
    other = explorer.add_root_group(ScriptedPrompt("other"))

    assert explorer.handle_drop(target, explorer.handle_drag([other]))
    assert explorer.get_parent(other) is target


def test_collapse_recursive_command(explorer):
    outer = explorer.add_root_group(ScriptedPrompt("outer"))
    inner = explorer.add_group(outer, ScriptedPrompt("inner"))

    explorer.collapse_recursive(outer)
    assert inner.collapsible_state is CollapsibleState.COLLAPSED

    explorer.expand_recursive(outer)
    assert inner.collapsible_state is CollapsibleState.EXPANDED
