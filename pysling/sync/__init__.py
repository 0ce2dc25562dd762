"""Sync engine for PySling - recursive push of directory trees."""

from .descriptors import DescriptorStore
from .engine import SyncEngine, gather_all
from .filesystem import EntryKind, FileSystem, LocalFileSystem
from .report import Failure, ImportReport, RemoteWarning, SyncReport
from .scanner import DirectoryLevel, scan_level, unused_descriptor_names

__all__ = [
    "SyncEngine",
    "gather_all",
    "DescriptorStore",
    "DirectoryLevel",
    "scan_level",
    "unused_descriptor_names",
    "EntryKind",
    "FileSystem",
    "LocalFileSystem",
    "Failure",
    "ImportReport",
    "RemoteWarning",
    "SyncReport",
]
