"""Resource state kept between runs.

The state file holds what the service only returns once: the identity and
computed values (the generated API keys) of every resource, keyed by
``provider/type/label``. It is written with owner-only permissions.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .resource import Resource

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = "greenops.state.json"


def state_key(provider: str, res: Resource) -> str:
    return f"{provider}/{type(res).__name__.lower()}/{res.label}"


class State(BaseModel):
    """Snapshots of tracked resources."""

    resources: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> State:
        """Read a state file; a missing file is an empty state."""
        if not path.exists():
            logger.debug("No state at %s", path)
            return cls()
        try:
            return cls.model_validate_json(path.read_text())
        except ValidationError as exc:
            raise ValueError(f"{path}: invalid state file: {exc}") from exc

    def save(self, path: Path) -> None:
        path.touch(mode=0o600, exist_ok=True)
        path.chmod(0o600)
        path.write_text(self.model_dump_json(indent=2))
        logger.debug("Saved %d resource(s) to %s", len(self.resources), path)

    def restore(self, key: str, res: Resource) -> None:
        if (saved := self.resources.get(key)) is not None:
            res.restore(saved)

    def record(self, key: str, res: Resource) -> None:
        """Store a resource snapshot, or forget it once the resource is gone."""
        if res.tracked:
            self.resources[key] = res.snapshot()
        else:
            self.resources.pop(key, None)

    def outputs(self, prefix: str = "") -> dict[str, dict[str, Any]]:
        """Stored entries whose key starts with prefix."""
        return {k: v for k, v in sorted(self.resources.items()) if k.startswith(prefix)}
