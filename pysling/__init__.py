"""PySling - push local content trees to Apache Sling through the POST servlet."""

from .api import SlingClient
from .exceptions import (
    SlingAPIError,
    SlingConfigError,
    SlingCycleError,
    SlingError,
    SlingFileNotFoundError,
    SlingInvalidResponseError,
    SlingNetworkError,
)
from .importer import ImportRunner, get_import_type, get_node_name
from .models import Endpoint, ImportOptions, PostResponse, SyncTarget
from .utils import concat_resource, normalize_properties, remove_trailing_slash

__version__ = "0.1.0"

__all__ = [
    "SlingClient",
    "ImportRunner",
    "Endpoint",
    "ImportOptions",
    "PostResponse",
    "SyncTarget",
    "SlingError",
    "SlingAPIError",
    "SlingConfigError",
    "SlingCycleError",
    "SlingFileNotFoundError",
    "SlingInvalidResponseError",
    "SlingNetworkError",
    "concat_resource",
    "get_import_type",
    "get_node_name",
    "normalize_properties",
    "remove_trailing_slash",
]
