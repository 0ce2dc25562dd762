"""Utility functions for pysling."""

import json
import mimetypes
from pathlib import Path
from typing import Any

# =============================================================================
# Constants
# =============================================================================

# Reserved extension of descriptor files
DESCRIPTOR_EXTENSION: str = ".json"

# Suffix of the synthetic field marking a multi-value property
TYPE_HINT_SUFFIX: str = "@TypeHint"

# Type hint sent for array properties
MULTI_VALUE_TYPE_HINT: str = "String[]"

# Seed properties for folders created from local directories
FOLDER_PROPERTIES: dict[str, str] = {"jcr:primaryType": "sling:Folder"}

# Size of the HTTP connection pool, also the number of requests sent at once
DEFAULT_MAX_CONNECTIONS: int = 100

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds


# =============================================================================
# Resource path utilities
# =============================================================================


def concat_resource(parent: str, node: str) -> str:
    """Concatenate a parent resource path and a child name.

    Args:
        parent: Path of the parent resource
        node: Name of the child node

    Returns:
        Path of the child, with exactly one slash between parent and child

    Examples:
        >>> concat_resource("/content/", "node")
        '/content/node'
        >>> concat_resource("/", "node")
        '/node'
    """
    if parent.endswith("/"):
        return parent + node
    return parent + "/" + node


def remove_trailing_slash(path: str) -> str:
    """Strip a single trailing slash, keeping the root path intact."""
    if path == "/":
        return path
    if path.endswith("/"):
        return path[:-1]
    return path


# =============================================================================
# Property normalization
# =============================================================================


def _to_form_value(value: Any) -> str:
    # bool must be tested before int, bool is a subclass of int
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value)
    return str(value)


def normalize_properties(properties: dict[str, Any]) -> dict[str, Any]:
    """Convert a property bag into form fields for the POST servlet.

    Array values are kept as lists of strings (one form field per item) and
    receive a ``<name>@TypeHint = String[]`` companion field unless one is
    already present. Booleans become "true"/"false", other scalars are
    converted with ``str()``. Objects and nested arrays are sent
    as JSON text.

    Args:
        properties: Property bag

    Returns:
        New dict mapping field names to a string or a list of strings
    """
    fields: dict[str, Any] = {}
    for name, value in properties.items():
        if isinstance(value, (list, tuple)):
            fields[name] = [_to_form_value(item) for item in value]
            hint = name + TYPE_HINT_SUFFIX
            if hint not in properties:
                fields[hint] = MULTI_VALUE_TYPE_HINT
        else:
            fields[name] = _to_form_value(value)
    return fields


def namespace_properties(prefix: str, properties: dict[str, Any]) -> dict[str, Any]:
    """Prefix every property name with ``prefix + "/"``.

    Used to attach properties to a child node in the same request.
    """
    return {f"{prefix}/{name}": value for name, value in properties.items()}


# =============================================================================
# File utilities
# =============================================================================


def detect_mime_type(file_path: Path) -> str:
    """Detect the MIME type of a file from its name.

    Args:
        file_path: Path to the file

    Returns:
        MIME type string (defaults to 'application/octet-stream')
    """
    mime_type, _ = mimetypes.guess_type(str(file_path))
    return mime_type or "application/octet-stream"


def strip_extension(name: str) -> str:
    """Return a file name without its last extension.

    Leading dots do not count as an extension separator, so ".hidden" is
    returned unchanged.
    """
    stem, _ = _split_extension(name)
    return stem


def _split_extension(name: str) -> tuple[str, str]:
    index = name.rfind(".")
    if index <= 0:
        return name, ""
    return name[:index], name[index:]


def get_extension(name: str) -> str:
    """Return the last extension of a file name, including the dot."""
    _, ext = _split_extension(name)
    return ext
