"""Cluster resource — registration and API key of a cluster agent."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import Field, PrivateAttr

from .context import Context
from .resource import Resource, resource

logger = logging.getLogger(__name__)


@resource("cluster")
class Cluster(Resource):
    """A named cluster and the API key its agent authenticates with."""

    name: str = Field(
        min_length=1,
        description="Name of the cluster where the GreenOps agent should be installed",
        json_schema_extra={"force_new": True},
    )
    rotate: bool = Field(
        default=False,
        description="Set to true to rotate the apikey used by the agent",
    )
    description: str = Field(
        default="",
        description="Description or notes for the cluster",
    )
    apikey: str = Field(
        default="",
        repr=False,
        description="API key that is defined when the GreenOps agent is created",
        json_schema_extra={"computed": True, "sensitive": True},
    )

    # the current rotate request has already been served
    _rotated: bool = PrivateAttr(default=False)

    @property
    def label(self) -> str:
        return self.name

    def create(self, ctx: Context) -> None:
        self.apikey = ctx.client.generate_key(self.name)
        self.id = self.name
        if self.rotate:
            # a fresh key also serves a pending rotate request
            self.rotate = False
            self._rotated = True
        logger.info("Created cluster '%s'", self.name)

    def read(self, ctx: Context) -> None:
        if ctx.client.find_key(self.name) is None:
            logger.info("Cluster '%s' no longer exists", self.name)
            self.id = ""
        else:
            self.id = self.name

    def needs_update(self) -> bool:
        return self.rotate

    def update(self, ctx: Context) -> None:
        if not self.rotate:
            logger.debug("Nothing to update for cluster '%s'", self.name)
            return
        self.apikey = ctx.client.rotate_key(self.name)
        self.id = self.name
        self.rotate = False
        self._rotated = True
        logger.info("Rotated API key for cluster '%s'", self.name)

    def delete(self, ctx: Context) -> None:
        ctx.client.delete_keys(self.name)
        self.id = ""
        logger.info("Deleted cluster '%s'", self.name)

    def exists(self, ctx: Context) -> bool:
        return ctx.client.find_key(self.name) is not None

    def import_state(self, id: str) -> None:
        if not self.tracked:
            self.name = id
        super().import_state(id)

    def snapshot(self) -> dict[str, Any]:
        return {**super().snapshot(), "rotated": self._rotated}

    def restore(self, saved: Mapping[str, Any]) -> None:
        super().restore(saved)
        if self.rotate and saved.get("rotated"):
            logger.debug("Key for cluster '%s' already rotated for this request", self.name)
            self.rotate = False
            self._rotated = True
