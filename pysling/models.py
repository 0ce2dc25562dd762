"""Data models for pysling."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from .exceptions import SlingConfigError

PropertyValue = Union[str, int, float, bool, list]
PropertyBag = dict[str, Any]


@dataclass(frozen=True)
class Endpoint:
    """Connection details for a Sling instance."""

    host: str = "localhost"
    port: int = 8080
    user: str = "admin"
    password: str = "admin"
    scheme: str = "http"

    @property
    def base_url(self) -> str:
        """Base URL of the instance, without trailing slash."""
        return f"{self.scheme}://{self.host}:{self.port}"

    def url_for(self, path: str) -> str:
        """Return the absolute URL of a resource path.

        Args:
            path: Resource path (e.g. "/content/site")

        Returns:
            Absolute URL pointing at the resource
        """
        if not path.startswith("/"):
            path = "/" + path
        return self.base_url + path


@dataclass(frozen=True)
class ImportOptions:
    """Control flags for the import operation of the POST servlet."""

    checkin: bool = False
    auto_checkout: bool = False
    replace: bool = False
    replace_properties: bool = False

    def to_fields(self) -> dict[str, str]:
        """Return the form fields for the flags that are set.

        Flags which are False are omitted from the request entirely.
        """
        flags = {
            ":checkin": self.checkin,
            ":autoCheckout": self.auto_checkout,
            ":replace": self.replace,
            ":replaceProperties": self.replace_properties,
        }
        return {name: "true" for name, value in flags.items() if value}


@dataclass
class PostResponse:
    """Outcome of a request to the POST servlet.

    The client does not judge the outcome; callers inspect ``status_code``
    and ``body`` to decide whether to warn.
    """

    path: str
    """Resource path the request was sent to"""

    status_code: int
    """HTTP status code"""

    body: dict[str, Any] = field(default_factory=dict)
    """Parsed JSON body (empty when the server sent no content)"""

    @property
    def ok(self) -> bool:
        """True if the status code is in the 2xx range."""
        return 200 <= self.status_code < 300


@dataclass
class SyncTarget:
    """A local directory mapped onto a remote resource path."""

    local: Path
    """Local directory to synchronize"""

    remote: str = "/"
    """Remote resource path the directory maps to"""

    def __post_init__(self) -> None:
        if isinstance(self.local, str):
            self.local = Path(self.local)
        if not self.remote:
            self.remote = "/"
        elif not self.remote.startswith("/"):
            self.remote = "/" + self.remote

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> list["SyncTarget"]:
        """Create targets from a configuration group.

        A group has a ``src`` (a path or a list of paths) and a ``dest``
        resource path. Every source becomes one target.

        Args:
            data: Configuration group

        Returns:
            List of targets sharing the group's destination

        Raises:
            SlingConfigError: If a required field is missing
        """
        missing = [name for name in ("src", "dest") if name not in data]
        if missing:
            raise SlingConfigError(f"Missing required fields: {', '.join(missing)}")

        sources = data["src"]
        if isinstance(sources, str):
            sources = [sources]
        if not isinstance(sources, list) or not all(
            isinstance(source, str) for source in sources
        ):
            raise SlingConfigError("Field 'src' must be a path or a list of paths")
        if not isinstance(data["dest"], str):
            raise SlingConfigError("Field 'dest' must be a resource path")

        return [cls(local=Path(source), remote=data["dest"]) for source in sources]

    def to_dict(self) -> dict[str, Any]:
        return {"src": str(self.local), "dest": self.remote}


def load_targets_from_json(path: Path) -> list[SyncTarget]:
    """Load sync targets from a JSON file.

    The file holds either a list of groups or an object with a ``targets``
    list. Relative sources are resolved against the file's directory.

    Args:
        path: Path of the targets file

    Returns:
        List of sync targets

    Raises:
        SlingConfigError: If the file cannot be read or is malformed
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise SlingConfigError(f"Cannot read targets file {path}: {e}") from e
    except ValueError as e:
        raise SlingConfigError(f"Invalid JSON in targets file {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("targets")
    if not isinstance(data, list):
        raise SlingConfigError(f"Targets file {path} must contain a list of targets")

    targets: list[SyncTarget] = []
    for group in data:
        if not isinstance(group, dict):
            raise SlingConfigError(f"Invalid target entry in {path}: {group!r}")
        for target in SyncTarget.from_dict(group):
            if not target.local.is_absolute():
                target.local = Path(path).parent / target.local
            targets.append(target)
    return targets
