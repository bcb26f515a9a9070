"""
Exclusion rules for entries added to the explorer.

A basename is excluded when it ends with any configured suffix. This is a
plain ``str.endswith`` check, not a glob: ``.meta`` excludes
``texture.png.meta`` and also a file literally named ``.meta``.

Import additionally skips a small set of reserved system artifacts that
operating systems drop into directories on their own.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Sequence

from custom_explorer.core import config

#: Names that directory import never turns into nodes.
RESERVED_NAMES = frozenset({".DS_Store", "Thumbs.db", "desktop.ini"})

#: Callable returning the current excluded suffixes.
SuffixSource = Callable[[], Sequence[str]]


def matches_suffix(name: str, suffixes: Iterable[str]) -> bool:
    """Return True if ``name`` ends with any non-empty suffix."""
    return any(suffix and name.endswith(suffix) for suffix in suffixes)


def is_reserved(name: str) -> bool:
    return name in RESERVED_NAMES


class ExclusionPredicate:
    """
    Suffix-based exclusion check backed by a live settings source.

    The suffix list is fetched from ``source`` on every call so that
    configuration edits apply immediately.
    """

    def __init__(self, source: Optional[SuffixSource] = None) -> None:
        self._source = source or config.get_excluded_suffixes

    def suffixes(self) -> Sequence[str]:
        return list(self._source())

    def __call__(self, name: str) -> bool:
        return matches_suffix(name, self._source())
