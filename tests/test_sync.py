from pathlib import Path

from custom_explorer.core.decorations import DecorationProvider
from custom_explorer.core.indexes import node_uri
from custom_explorer.core.models import Severity, make_group
from custom_explorer.core.sync import SyncReconciler, is_within, pair_renames, rebase
from tests.fakes import RecordingHost


def test_is_within_is_segment_aware():
    assert is_within("/a/b/c.txt", "/a/b")
    assert is_within("/a/b/c.txt", "/a/b/")
    assert not is_within("/a/bb/c.txt", "/a/b")
    assert not is_within("/a/b", "/a/b")


def test_rebase_replaces_prefix():
    assert rebase("/a/b/c/d.txt", "/a/b", "/x") == "/x/c/d.txt"


# -----------------------------------------------------------------------------
# Renames
# -----------------------------------------------------------------------------

def test_rename_file_updates_path_and_label(store, host):
    node = store.add_file("/w/a.txt")
    host.refreshes.clear()

    assert SyncReconciler(store).on_did_rename_files([("/w/a.txt", "/w/z.txt")])

    assert node.file_path == "/w/z.txt"
    assert node.label == "z.txt"
    assert store.find_by_path("/w/z.txt") is node
    assert store.find_by_path("/w/a.txt") is None
    assert host.refreshes == [None]


def test_rename_directory_rebases_tracked_children(store, state):
    folder = store.attach(make_group("b", file_path="/w/b"))
    inside = store.add_file("/w/b/x.txt", folder)
    loose = store.add_file("/w/b/sub/y.txt")
    neighbour = store.add_file("/w/bb/z.txt")
    state.update_calls = 0

    assert SyncReconciler(store).on_did_rename_files([("/w/b", "/w/c")])

    assert folder.file_path == "/w/c"
    assert folder.label == "c"
    assert inside.file_path == "/w/c/x.txt"
    assert inside.label == "x.txt"
    assert loose.file_path == "/w/c/sub/y.txt"
    assert neighbour.file_path == "/w/bb/z.txt"
    assert state.update_calls == 1


def test_rename_updates_every_reference_to_a_path(store):
    g1 = store.add_group("one")
    g2 = store.add_group("two")
    first = store.add_file("/w/a.txt", g1)
    second = store.add_file("/w/a.txt", g2)

    SyncReconciler(store).on_did_rename_files([("/w/a.txt", "/w/b.txt")])

    assert first.file_path == second.file_path == "/w/b.txt"
    assert first.label == second.label == "b.txt"


def test_chained_renames_act_on_paths_before_the_batch(store, state):
    a = store.add_file("/w/a.txt")
    b = store.add_file("/w/b.txt")
    state.update_calls = 0

    assert SyncReconciler(store).on_did_rename_files(
        [("/w/a.txt", "/w/b.txt"), ("/w/b.txt", "/w/c.txt")]
    )

    assert a.file_path == "/w/b.txt"
    assert b.file_path == "/w/c.txt"
    assert store.find_by_path("/w/b.txt") is a
    assert store.find_by_path("/w/c.txt") is b
    assert state.update_calls == 1


def test_chained_folder_renames_rebase_once(store):
    inside = store.add_file("/w/x/f.txt")

    SyncReconciler(store).on_did_rename_files([("/w/x", "/w/y"), ("/w/y", "/w/z")])

    assert inside.file_path == "/w/y/f.txt"


def test_rename_of_untracked_path_changes_nothing(store, state):
    store.add_file("/w/a.txt")
    state.update_calls = 0

    assert not SyncReconciler(store).on_did_rename_files([("/w/other", "/w/else")])
    assert state.update_calls == 0


# -----------------------------------------------------------------------------
# Deletes
# -----------------------------------------------------------------------------

def test_delete_removes_tracked_nodes(store, state, host):
    keep = store.add_file("/w/keep.txt")
    store.add_file("/w/gone.txt")
    state.update_calls = 0
    host.refreshes.clear()

    assert SyncReconciler(store).on_did_delete_files(["/w/gone.txt"])

    assert store.roots == [keep]
    assert state.update_calls == 1
    assert host.refreshes == [None]


def test_delete_directory_removes_nodes_inside_it(store):
    folder = store.attach(make_group("b", file_path="/w/b"))
    store.add_file("/w/b/x.txt", folder)
    elsewhere = store.add_group("elsewhere")
    store.add_file("/w/b/deep/y.txt", elsewhere)
    survivor = store.add_file("/w/bb/z.txt")

    assert SyncReconciler(store).on_did_delete_files(["/w/b"])

    assert store.get_node(folder.id) is None
    assert elsewhere.children == []
    assert survivor in store.roots
    assert store.find_by_path("/w/b/deep/y.txt") is None


def test_delete_of_several_paths_is_one_save(store, state, host):
    for name in ("a", "b", "c"):
        store.add_file(f"/w/{name}.txt")
    state.update_calls = 0
    host.refreshes.clear()

    SyncReconciler(store).on_did_delete_files(["/w/a.txt", "/w/b.txt", "/w/c.txt"])

    assert store.roots == []
    assert state.update_calls == 1
    assert host.refreshes == [None]


def test_delete_of_untracked_path_changes_nothing(store, state, host):
    store.add_file("/w/a.txt")
    state.update_calls = 0
    host.refreshes.clear()

    assert not SyncReconciler(store).on_did_delete_files(["/w/unknown.txt"])
    assert state.update_calls == 0
    assert host.refreshes == []


# -----------------------------------------------------------------------------
# Active editor and diagnostics
# -----------------------------------------------------------------------------

def test_active_editor_reveals_node(store, host):
    node = store.add_file("/w/a.txt")

    assert SyncReconciler(store).on_active_editor_changed("/w/a.txt") is node
    assert host.revealed == [node]


def test_active_editor_ignored_when_hidden(store):
    hidden = RecordingHost(visible=False)
    store.host = hidden
    store.add_file("/w/a.txt")

    assert SyncReconciler(store).on_active_editor_changed("/w/a.txt") is None
    assert hidden.revealed == []


def test_active_editor_for_untracked_file(store, host):
    assert SyncReconciler(store).on_active_editor_changed("/w/nowhere.txt") is None
    assert SyncReconciler(store).on_active_editor_changed(None) is None
    assert host.revealed == []


def test_diagnostics_refresh_node_and_ancestors(store, host):
    outer = store.add_group("outer")
    inner = store.add_group("inner", outer)
    store.add_file("/w/a.txt", inner)
    store.add_file("/w/b.txt", inner)
    decorations = DecorationProvider(store, lambda path: Severity.ERROR)

    uris = SyncReconciler(store, decorations).on_diagnostics_changed(["/w/a.txt", "/w/b.txt"])

    assert uris == [
        Path("/w/a.txt").as_uri(),
        node_uri(inner),
        node_uri(outer),
        Path("/w/b.txt").as_uri(),
    ]
    assert host.decorated == [uris]


def test_diagnostics_for_untracked_paths_do_not_notify(store, host):
    assert SyncReconciler(store).on_diagnostics_changed(["/w/none.txt"]) == []
    assert host.decorated == []


def test_rename_of_untracked_folder_rebases_nested_file(store):
    node = store.add_file("/old/dir/sub/f.txt")

    assert SyncReconciler(store).on_did_rename_files([("/old/dir", "/new/dir")])

    assert node.file_path == "/new/dir/sub/f.txt"
    assert node.label == "f.txt"
    assert store.find_by_path("/new/dir/sub/f.txt") is node


def test_diagnostics_reach_ancestors_of_every_reference(store, host):
    g1 = store.add_group("G1")
    g2 = store.add_group("G2")
    store.add_file("/w/a.txt", g1)
    store.add_file("/w/a.txt", g2)

    uris = SyncReconciler(store).on_diagnostics_changed(["/w/a.txt"])

    assert node_uri(g1) in uris
    assert node_uri(g2) in uris
    assert host.decorated == [uris]


# -----------------------------------------------------------------------------
# Guessing renames from directory listings
# -----------------------------------------------------------------------------

def test_one_vanished_and_one_appeared_sibling_is_a_rename():
    renames, deleted = pair_renames(["/w/a.txt"], ["/w/b.txt"])

    assert renames == [("/w/a.txt", "/w/b.txt")]
    assert deleted == []


def test_ambiguous_changes_are_deletions():
    renames, deleted = pair_renames(
        ["/w/a.txt", "/w/b.txt", "/x/c.txt"],
        ["/w/d.txt", "/y/e.txt"],
    )

    assert renames == []
    assert deleted == ["/w/a.txt", "/w/b.txt", "/x/c.txt"]


def test_renames_are_paired_per_directory():
    renames, deleted = pair_renames(["/w/a.txt", "/x/dir"], ["/x/folder", "/w/b.txt"])

    assert renames == [("/w/a.txt", "/w/b.txt"), ("/x/dir", "/x/folder")]
    assert deleted == []
