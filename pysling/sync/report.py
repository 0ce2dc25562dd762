"""Results collected while pushing content."""

from dataclasses import dataclass, field
from typing import Any, Optional

from ..models import PostResponse


@dataclass(frozen=True)
class RemoteWarning:
    """A request the servlet rejected (non-2xx status)."""

    path: str
    """Resource path reported by the servlet"""

    message: str
    """Error message reported by the servlet"""

    status_code: int
    """HTTP status code"""

    error_class: Optional[str] = None
    """Exception class reported by the servlet, if any"""

    def __str__(self) -> str:
        if self.error_class:
            return f"Error writing {self.path}: {self.error_class}: {self.message}."
        return f"Error writing {self.path}: {self.message}."

    @classmethod
    def from_post_response(cls, response: PostResponse) -> "RemoteWarning":
        """Build a warning from a rejected create request.

        The servlet reports ``path`` and an ``error`` object with ``class``
        and ``message``.
        """
        body = response.body
        error: Any = body.get("error")
        if not isinstance(error, dict):
            error = {}
        return cls(
            path=str(body.get("path") or response.path),
            message=str(error.get("message") or body.get("status.message") or ""),
            status_code=response.status_code,
            error_class=error.get("class"),
        )

    @classmethod
    def from_import_response(cls, response: PostResponse) -> "RemoteWarning":
        """Build a warning from a rejected import request.

        The import operation reports ``path`` and ``status.message``.
        """
        body = response.body
        return cls(
            path=str(body.get("path") or response.path),
            message=str(body.get("status.message") or ""),
            status_code=response.status_code,
        )


@dataclass(frozen=True)
class Failure:
    """A local input that could not be pushed."""

    source: str
    """Local directory or file"""

    error: Exception
    """Error that aborted it"""

    def __str__(self) -> str:
        return f"{self.source}: {self.error}"


@dataclass
class SyncReport:
    """Statistics, warnings and failures of a directory synchronization."""

    files: int = 0
    folders: int = 0
    nodes: int = 0
    warnings: list[RemoteWarning] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": self.files,
            "folders": self.folders,
            "nodes": self.nodes,
            "warnings": [str(w) for w in self.warnings],
            "failures": [str(f) for f in self.failures],
        }


@dataclass
class ImportReport:
    """Statistics, warnings and failures of a batch import."""

    imported: int = 0
    warnings: list[RemoteWarning] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "imported": self.imported,
            "warnings": [str(w) for w in self.warnings],
            "failures": [str(f) for f in self.failures],
        }
