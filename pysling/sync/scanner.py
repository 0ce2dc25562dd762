"""Classification of the children of a directory."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from ..utils import DESCRIPTOR_EXTENSION, get_extension, strip_extension
from .descriptors import DescriptorStore
from .filesystem import EntryKind, FileSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryLevel:
    """One directory's children, classified once per synchronization."""

    directory: Path
    """Local directory"""

    files: tuple[str, ...]
    """Regular files that are not descriptors"""

    directories: tuple[str, ...]
    """Subdirectories"""

    descriptors: tuple[str, ...]
    """Descriptor file names (with extension)"""

    store: DescriptorStore
    """Parsed descriptors of this directory"""

    def unused_descriptor_names(self) -> list[str]:
        """Descriptors that describe neither a file nor a subdirectory."""
        return unused_descriptor_names(self.files, self.directories, self.store.names())


def unused_descriptor_names(
    files: Iterable[str], directories: Iterable[str], descriptor_names: Iterable[str]
) -> list[str]:
    """Return the descriptor base names with no matching file or directory.

    A descriptor ``b`` is used when a file's name without extension is ``b``
    or when a subdirectory is named ``b``.

    Args:
        files: File names
        directories: Directory names
        descriptor_names: Descriptor base names

    Returns:
        Unused base names, in the order of ``descriptor_names``
    """
    used = {strip_extension(name) for name in files}
    used.update(directories)
    return [name for name in descriptor_names if name not in used]


def scan_level(filesystem: FileSystem, directory: Path) -> DirectoryLevel:
    """List and classify the children of a directory.

    Each child is checked once: directories, descriptors (regular files
    with the ``.json`` extension) and files (other regular files). Anything
    else is skipped.

    Args:
        filesystem: Filesystem to read from
        directory: Directory to scan

    Returns:
        The classified level, with its descriptors loaded
    """
    files: list[str] = []
    directories: list[str] = []
    descriptors: list[str] = []

    for name in filesystem.list_children(directory):
        kind = filesystem.kind(directory / name)
        if kind is EntryKind.DIRECTORY:
            directories.append(name)
        elif kind is EntryKind.FILE:
            if get_extension(name) == DESCRIPTOR_EXTENSION:
                descriptors.append(name)
            else:
                files.append(name)
        else:
            logger.debug("Skipping %s (%s)", directory / name, kind.value)

    store = DescriptorStore.load(filesystem, directory, descriptors)

    return DirectoryLevel(
        directory=directory,
        files=tuple(files),
        directories=tuple(directories),
        descriptors=tuple(descriptors),
        store=store,
    )
