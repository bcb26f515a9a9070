"""Custom Explorer: a user-curated tree of files and groups kept in sync with disk."""

__version__ = "0.1.0"
