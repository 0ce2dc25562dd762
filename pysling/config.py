"""Configuration management for pysling."""

import os
from typing import Optional

from .exceptions import SlingConfigError
from .models import Endpoint

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080
DEFAULT_USER = "admin"
DEFAULT_PASSWORD = "admin"
DEFAULT_SCHEME = "http"


class Config:
    """Connection defaults read from the environment.

    Variables: SLING_HOST, SLING_PORT, SLING_USER, SLING_PASSWORD, SLING_SCHEME.
    """

    @property
    def host(self) -> str:
        return os.environ.get("SLING_HOST") or DEFAULT_HOST

    @property
    def port(self) -> int:
        value = os.environ.get("SLING_PORT")
        if not value:
            return DEFAULT_PORT
        try:
            return int(value)
        except ValueError:
            raise SlingConfigError(f"Invalid SLING_PORT value: {value!r}") from None

    @property
    def user(self) -> str:
        return os.environ.get("SLING_USER") or DEFAULT_USER

    @property
    def password(self) -> str:
        return os.environ.get("SLING_PASSWORD") or DEFAULT_PASSWORD

    @property
    def scheme(self) -> str:
        return os.environ.get("SLING_SCHEME") or DEFAULT_SCHEME

    def endpoint(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Endpoint:
        """Build an endpoint, using the environment for missing values."""
        return Endpoint(
            host=host or self.host,
            port=port if port is not None else self.port,
            user=user or self.user,
            password=password if password is not None else self.password,
            scheme=self.scheme,
        )


config = Config()
