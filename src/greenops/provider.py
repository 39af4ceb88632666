"""Provider model — configuration, registration and apply entry points."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from typing import Any

import httpx
from pydantic import BaseModel, Field

from .auth import TokenAuth
from .client import DEFAULT_TIMEOUT, ApiClient
from .context import Context
from .lifecycle import Absent
from .plans import Plan
from .resource import Resource, _resource_registry
from .schema import describe
from .state import State, state_key

logger = logging.getLogger(__name__)


def _env_default(var: str, fallback: str) -> Callable[[], str]:
    return lambda: os.environ.get(var, fallback)


class Provider(BaseModel):
    """Connection settings for one org plus the plans applied through it."""

    model_config = {"arbitrary_types_allowed": True}

    name: str = "greenops"
    description: str = ""
    address: str = Field(
        default_factory=_env_default("SERVICE_ADDRESS", ""),
        description="Base address of the GreenOps service",
        json_schema_extra={"env": "SERVICE_ADDRESS", "required": True, "fallback": ""},
    )
    org: str = Field(
        default_factory=_env_default("ORG_NAME", "org"),
        description="Organization that owns the clusters",
        json_schema_extra={"env": "ORG_NAME", "fallback": "org"},
    )
    token: str = Field(
        default_factory=_env_default("SERVICE_TOKEN", ""),
        repr=False,
        description="Token used to authenticate against the service",
        json_schema_extra={"env": "SERVICE_TOKEN", "required": True, "fallback": "", "sensitive": True},
    )
    timeout: float = Field(default=DEFAULT_TIMEOUT, description="Request timeout in seconds")
    strict: bool = Field(default=True, description="Reject malformed responses instead of ignoring them")
    auth_header: str = Field(default="Authorization", description="Header carrying the token")
    auth_scheme: str = Field(default="Bearer", description="Scheme prefixed to the token; empty sends it bare")
    plans: list[Plan] = Field(default_factory=list)

    @classmethod
    def registration(cls) -> dict[str, Any]:
        """Return the provider attributes and registered resource types."""
        return {
            "provider": [a.to_dict() for a in describe(cls, exclude={"name", "description", "plans"})],
            "resources": {
                name: [a.to_dict() for a in describe(res_cls, exclude={"id"})]
                for name, res_cls in sorted(_resource_registry.items())
            },
        }

    def configure(self, transport: httpx.BaseTransport | None = None) -> ApiClient:
        """Build the API client for this provider."""
        if not self.address:
            raise ValueError(f"Provider '{self.name}' has no address; set it or SERVICE_ADDRESS")
        if not self.token:
            raise ValueError(f"Provider '{self.name}' has no token; set it or SERVICE_TOKEN")
        logger.debug("Configuring provider '%s' for %s (org '%s')", self.name, self.address, self.org)
        return ApiClient(
            self.address,
            self.org,
            self.token,
            timeout=self.timeout,
            strict=self.strict,
            auth=TokenAuth(self.token, header=self.auth_header, scheme=self.auth_scheme),
            transport=transport,
        )

    def resources(self) -> Iterator[Resource]:
        """Every resource referenced by this provider's plans, in order."""
        for plan in self.plans:
            for op in plan:
                yield op.resource

    def _unique_resources(self) -> list[Resource]:
        seen: set[int] = set()
        unique: list[Resource] = []
        for res in self.resources():
            if id(res) not in seen:
                seen.add(id(res))
                unique.append(res)
        return unique

    def apply(
        self,
        *,
        state: State | None = None,
        transport: httpx.BaseTransport | None = None,
        **kwargs,
    ) -> list[Resource]:
        """Apply all plans. kwargs are passed to Context.

        Returns the resources whose computed values changed. With a state,
        resources are restored from it first and recorded back afterwards,
        even when an operation fails part way.
        """
        resources = self._unique_resources()
        if state is not None:
            for res in resources:
                state.restore(state_key(self.name, res), res)
        before = {id(res): res.outputs() for res in resources}

        with self.configure(transport) as client:
            ctx = Context(target=self, client=client, **kwargs)
            logger.info("Applying provider '%s'", self.name)
            try:
                for plan in self.plans:
                    plan.apply(ctx)
            finally:
                if state is not None and not ctx.dry_run:
                    for res in resources:
                        state.record(state_key(self.name, res), res)

        return [res for res in resources if res.outputs() != before[id(res)]]

    def destroy(
        self,
        *,
        state: State | None = None,
        transport: httpx.BaseTransport | None = None,
        **kwargs,
    ) -> None:
        """Delete every resource, last declared first."""
        resources = self._unique_resources()
        with self.configure(transport) as client:
            ctx = Context(target=self, client=client, **kwargs)
            logger.info("Destroying provider '%s'", self.name)
            try:
                for res in reversed(resources):
                    Absent(res)(ctx)
            finally:
                if state is not None and not ctx.dry_run:
                    for res in resources:
                        state.record(state_key(self.name, res), res)

    def status(self, *, transport: httpx.BaseTransport | None = None) -> dict[str, bool]:
        """Report whether each resource exists remotely."""
        with self.configure(transport) as client:
            ctx = Context(target=self, client=client)
            return {res.label: res.exists(ctx) for res in self.resources()}
