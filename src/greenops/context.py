"""Runtime execution context for lifecycle callbacks."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .client import ApiClient


class Context[P]:
    """Runtime state passed to every lifecycle callback."""

    def __init__(self, target: P, *, client: ApiClient | None = None, dry_run: bool = False) -> None:
        self.target = target
        self._client = client
        self.dry_run = dry_run

    @property
    def client(self) -> ApiClient:
        """The configured API client; raises if the provider was never configured."""
        if self._client is None:
            raise RuntimeError("context has no configured API client")
        return self._client
