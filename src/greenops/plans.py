"""Plan model — a named collection of lifecycle operations."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from pydantic import BaseModel, Field

from .context import Context
from .lifecycle import LifecycleOp

logger = logging.getLogger(__name__)


class Plan(BaseModel):
    """A named collection of lifecycle operations."""

    model_config = {"arbitrary_types_allowed": True}

    name: str
    ops: list[LifecycleOp] = Field(default_factory=list)

    def __iter__(self) -> Iterator[LifecycleOp]:  # type: ignore[override]
        return iter(self.ops)

    def apply(self, ctx: Context) -> None:
        """Execute all operations in this plan."""
        logger.debug("Applying plan '%s'", self.name)
        for op in self.ops:
            op(ctx)
