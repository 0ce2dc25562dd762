"""Filesystem access used by the sync engine.

The engine never touches ``os`` directly; it goes through a
:class:`FileSystem` so that tests can substitute an in-memory tree.
"""

import json
import logging
import os
import stat
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from ..exceptions import SlingConfigError

logger = logging.getLogger(__name__)


class EntryKind(Enum):
    """Kind of a directory entry, as reported by a single filesystem check."""

    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"
    MISSING = "missing"


class FileSystem(Protocol):
    """Capabilities the sync engine needs from a filesystem."""

    def list_children(self, directory: Path) -> list[str]:
        """Return the names of the entries of a directory, sorted."""
        ...

    def kind(self, path: Path) -> EntryKind:
        """Return the kind of the entry at ``path``."""
        ...

    def read_descriptor(self, path: Path) -> dict[str, Any]:
        """Read and parse the descriptor file at ``path``."""
        ...

    def real_path(self, path: Path) -> str:
        """Return the canonical path of ``path`` (symlinks resolved)."""
        ...


def _node_kind(st_mode: int) -> EntryKind:
    if stat.S_ISDIR(st_mode):
        return EntryKind.DIRECTORY
    if stat.S_ISREG(st_mode):
        return EntryKind.FILE
    return EntryKind.OTHER


class LocalFileSystem:
    """:class:`FileSystem` backed by the local disk."""

    def list_children(self, directory: Path) -> list[str]:
        return sorted(os.listdir(directory))

    def kind(self, path: Path) -> EntryKind:
        try:
            # Follows symlinks: a link to a directory is synchronized as one
            st = os.stat(path)
        except FileNotFoundError:
            return EntryKind.MISSING
        except OSError as e:
            logger.debug("Cannot stat %s: %s", path, e)
            return EntryKind.OTHER
        return _node_kind(st.st_mode)

    def read_descriptor(self, path: Path) -> dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise SlingConfigError(f"Cannot read descriptor {path}: {e}") from e
        except ValueError as e:
            # JSONDecodeError or UnicodeDecodeError
            raise SlingConfigError(f"Invalid JSON in descriptor {path}: {e}") from e

        if not isinstance(data, dict):
            raise SlingConfigError(
                f"Descriptor {path} must contain a JSON object, "
                f"got {type(data).__name__}"
            )
        return data

    def real_path(self, path: Path) -> str:
        return os.path.realpath(path)
