"""Descriptor files: sidecar JSON files holding node properties."""

import copy
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Optional

from ..utils import DESCRIPTOR_EXTENSION, strip_extension
from .filesystem import FileSystem


class DescriptorStore:
    """Descriptors of a single directory, indexed by base name.

    The store is filled once when the directory is scanned and is read-only
    afterwards, so lookups for the same entry always return equal bags.
    """

    def __init__(self, descriptors: Mapping[str, Mapping[str, Any]]):
        self._descriptors = {name: dict(props) for name, props in descriptors.items()}

    @classmethod
    def load(
        cls, filesystem: FileSystem, directory: Path, names: Iterable[str]
    ) -> "DescriptorStore":
        """Read every descriptor of a directory.

        Args:
            filesystem: Filesystem to read from
            directory: Directory containing the descriptors
            names: File names of the descriptors (with extension)

        Returns:
            Store mapping base names to parsed descriptors
        """
        descriptors = {}
        for name in names:
            base = name[: -len(DESCRIPTOR_EXTENSION)]
            descriptors[base] = filesystem.read_descriptor(directory / name)
        return cls(descriptors)

    def names(self) -> list[str]:
        """Base names of all descriptors, in listing order."""
        return list(self._descriptors)

    def __contains__(self, base: str) -> bool:
        return base in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def properties_for(
        self, name: str, initial: Optional[Mapping[str, Any]] = None
    ) -> dict[str, Any]:
        """Return the properties for an entry of the directory.

        The entry's extension is stripped to find the matching descriptor.
        Descriptor values override ``initial`` values with the same key.

        Args:
            name: Entry name (file, directory or descriptor name)
            initial: Default properties

        Returns:
            A new property bag
        """
        result = dict(initial or {})
        descriptor = self._descriptors.get(strip_extension(name), {})
        result.update(copy.deepcopy(descriptor))
        return result
