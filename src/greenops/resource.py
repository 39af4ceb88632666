"""Resource ABC and resource type registration."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from .schema import computed_fields, force_new_fields

if TYPE_CHECKING:
    from .context import Context

logger = logging.getLogger(__name__)

_resource_registry: dict[str, type[Resource]] = {}


def resource(name: str):
    """Register a Resource class under its configuration block name."""

    def decorator(cls):
        _resource_registry[name] = cls
        return cls

    return decorator


class Resource(BaseModel, ABC):
    """Base class for every managed resource.

    ``id`` is the identity tracked by the host; an empty string means the
    resource is absent. Fields marked ``force_new`` cannot change once the
    resource has an identity.
    """

    id: str = Field(default="", description="Identity of the resource on the remote service")

    @property
    def tracked(self) -> bool:
        return bool(self.id)

    def __setattr__(self, name: str, value: Any) -> None:
        if self.tracked and name in force_new_fields(type(self)) and value != getattr(self, name):
            raise ValueError(f"{type(self).__name__} '{self.id}' must be replaced to change '{name}'")
        super().__setattr__(name, value)

    @property
    def label(self) -> str:
        return self.id or type(self).__name__

    @abstractmethod
    def create(self, ctx: Context) -> None:
        """Create the remote resource and record its identity."""

    @abstractmethod
    def read(self, ctx: Context) -> None:
        """Refresh identity from the remote service."""

    @abstractmethod
    def update(self, ctx: Context) -> None:
        """Apply in-place changes to an existing resource."""

    def needs_update(self) -> bool:
        """Update has in-place work to do."""
        return True

    @abstractmethod
    def delete(self, ctx: Context) -> None:
        """Delete the remote resource and clear its identity."""

    @abstractmethod
    def exists(self, ctx: Context) -> bool:
        """Remote resource exists."""

    def import_state(self, id: str) -> None:
        """Adopt an existing remote resource by identifier."""
        logger.debug("Importing %s '%s'", type(self).__name__, id)
        self.id = id

    def outputs(self) -> dict[str, Any]:
        """Values of the computed fields."""
        return {name: getattr(self, name) for name in computed_fields(type(self))}

    def snapshot(self) -> dict[str, Any]:
        """State to keep between runs."""
        return {"id": self.id, **self.outputs()}

    def restore(self, saved: Mapping[str, Any]) -> None:
        """Reload state kept by an earlier run."""
        self.id = saved.get("id", "")
        for name in computed_fields(type(self)):
            if name in saved:
                setattr(self, name, saved[name])
