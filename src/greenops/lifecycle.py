"""Lifecycle strategies — decide which callbacks a resource needs."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .context import Context
from .resource import Resource

logger = logging.getLogger(__name__)


class LifecycleOp(ABC):
    """Wraps a Resource with conditional execution logic."""

    def __init__(self, resource: Resource) -> None:
        self.resource = resource

    @abstractmethod
    def __call__(self, ctx: Context) -> None: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.resource!r})"


class Present(LifecycleOp):
    """Create only if the resource doesn't exist."""

    def __call__(self, ctx: Context) -> None:
        res = self.resource
        if res.exists(ctx):
            logger.debug("Skipping %s; already exists", res.label)
            res.read(ctx)
        elif ctx.dry_run:
            logger.info("[DRY RUN] Would create %s", res.label)
        else:
            logger.info("Creating %s", res.label)
            res.create(ctx)


class Ensure(LifecycleOp):
    """Create if missing, otherwise refresh and update in place."""

    def __call__(self, ctx: Context) -> None:
        res = self.resource
        if not res.exists(ctx):
            if ctx.dry_run:
                logger.info("[DRY RUN] Would create %s", res.label)
            else:
                logger.info("Creating %s", res.label)
                res.create(ctx)
            return
        res.read(ctx)
        if not res.needs_update():
            logger.debug("Skipping %s; up to date", res.label)
        elif ctx.dry_run:
            logger.info("[DRY RUN] Would update %s", res.label)
        else:
            logger.info("Updating %s", res.label)
            res.update(ctx)


class Absent(LifecycleOp):
    """Delete if the resource exists."""

    def __call__(self, ctx: Context) -> None:
        res = self.resource
        if res.exists(ctx):
            if ctx.dry_run:
                logger.info("[DRY RUN] Would delete %s", res.label)
            else:
                logger.info("Deleting %s", res.label)
                res.delete(ctx)
        else:
            logger.debug("Skipping removal of %s; not present", res.label)
            res.id = ""
