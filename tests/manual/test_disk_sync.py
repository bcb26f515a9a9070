"""
Manual test for following deletions and drops in the explorer window.

Run with:
    python tests/manual/test_disk_sync.py

This launches the GUI on a temporary workspace populated with a small
directory tree. It guides the user through steps to confirm that files
deleted on disk disappear from the tree, and that drag-and-drop from a
file manager adds entries.

This is **not** an automated test. It is a developer sanity check.
"""

import logging
import shutil
import tempfile
from pathlib import Path

from PySide6.QtWidgets import QApplication

from custom_explorer.core import config
from custom_explorer.gui.main_window import MainWindow


def _make_tree(root: Path) -> None:
    (root / "docs" / "drafts").mkdir(parents=True)
    (root / "docs" / "intro.md").write_text("# Intro\n", encoding="utf-8")
    (root / "docs" / "drafts" / "old.md").write_text("old\n", encoding="utf-8")
    (root / "notes.txt").write_text("notes\n", encoding="utf-8")
    (root / "cache.pyc").write_bytes(b"\0")


def main():
    logging.basicConfig(level=logging.INFO)

    print("\n=== Explorer Disk Sync Manual Test ===")
    tmp = Path(tempfile.mkdtemp(prefix="custom_explorer_manual_"))
    workspace = tmp / "workspace"
    workspace.mkdir()
    _make_tree(workspace)

    # Keep the test's state away from the user's real workspaces.
    config.set_state_root_dir(tmp / "state")
    print(f"Temporary workspace: {workspace}")
    print(f"Excluded suffixes:   {config.get_excluded_suffixes()}")

    app = QApplication([])
    win = MainWindow(str(workspace))
    win._run_command("Import folder", win._explorer.import_directory, str(workspace / "docs"))
    win._run_command("Add files", win._explorer.add_files, [str(workspace / "notes.txt")])

    print("\nStep 1: The window shows a 'docs' group and 'notes.txt'.")
    print("  - 'drafts' is collapsed; expanding it shows 'old.md'.")
    print("\nStep 2: Delete a tracked file from a terminal, e.g.:")
    print(f"  rm {workspace / 'docs' / 'drafts' / 'old.md'}")
    print("  The entry SHOULD disappear from the tree within a second.")
    print("\nStep 3: Drag 'cache.pyc' from a file manager onto the tree.")
    print("  If '.pyc' is an excluded suffix, nothing SHOULD be added.")
    print("\nClose the GUI window to end the test.\n")

    win.show()
    app.exec()

    config.set_state_root_dir(None)
    shutil.rmtree(tmp, ignore_errors=True)
    print("Temporary workspace removed.")


if __name__ == "__main__":
    main()
