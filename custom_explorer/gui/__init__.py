"""PySide6 host for the explorer: tree widget and main window."""
