"""Workspace — a typed collection of providers parsed from HCL."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any, overload

from .hcl import interpolate_attrs, load
from .lifecycle import Absent, Ensure, LifecycleOp, Present
from .plans import Plan
from .provider import Provider
from .resource import Resource, _resource_registry

logger = logging.getLogger(__name__)

# provider settings that must not silently expand to an empty string
REQUIRED_SETTINGS = frozenset({"address", "token"})

_STRATEGY_MAP: dict[str, type[LifecycleOp]] = {
    "present": Present,
    "ensure": Ensure,
    "absent": Absent,
}


def _decode_resource(
    type_name: str,
    attrs: dict[str, Any],
) -> Resource:
    """Decode a resource block into a Resource instance using the registry."""
    if type_name not in _resource_registry:
        raise ValueError(f"Unknown resource type: '{type_name}'")
    res_cls = _resource_registry[type_name]
    logger.debug("Decoding resource '%s' -> %s", type_name, res_cls.__name__)
    return res_cls(**interpolate_attrs(attrs))


def _parse_ops(
    block_data: dict[str, Any],
) -> list[LifecycleOp]:
    """Parse strategy blocks (present/ensure/absent) from a plan or provider block.

    HCL2 structure for strategy blocks:
        {"ensure": [{"cluster": {"name": "team-a"}}, ...], ...}
    """
    ops: list[LifecycleOp] = []
    for strategy_name, strategy_cls in _STRATEGY_MAP.items():
        for res_block in block_data.get(strategy_name, []):
            # Each res_block is {"type_name": {attrs}}
            for type_name, attrs in res_block.items():
                ops.append(strategy_cls(_decode_resource(type_name, dict(attrs))))
    return ops


def _resolve_plan(
    name: str,
    pending: dict[str, dict[str, Any]],
    resolved: dict[str, Plan],
    resolving: set[str],
) -> Plan:
    """Recursively resolve a single plan, handling includes."""
    if name in resolved:
        return resolved[name]
    if name in resolving:
        raise ValueError(f"Circular include detected: '{name}'")
    if name not in pending:
        raise ValueError(f"Unknown plan: '{name}'")
    logger.debug("Resolving plan '%s'", name)
    resolving.add(name)

    plan_data = pending[name]
    ops: list[LifecycleOp] = []

    for include_name in plan_data.get("include", []):
        logger.debug("Plan '%s' includes '%s'", name, include_name)
        ops.extend(_resolve_plan(include_name, pending, resolved, resolving).ops)

    ops.extend(_parse_ops(plan_data))

    plan = Plan(name=name, ops=ops)
    resolved[name] = plan
    resolving.discard(name)
    return plan


def _build_provider[P: Provider](
    name: str,
    data: dict[str, Any],
    plans: dict[str, Plan],
    *,
    provider_type: type[P] = Provider,  # type: ignore[assignment]
) -> P:
    """Build a single Provider instance from parsed data."""
    logger.debug("Building provider '%s' as %s", name, provider_type.__name__)
    provider_plans: list[Plan] = []
    for plan_name in data.get("use", []):
        if plan_name not in plans:
            raise ValueError(f"Provider '{name}' references unknown plan: '{plan_name}'")
        provider_plans.append(plans[plan_name])

    # inline lifecycle blocks form an anonymous plan
    inline_ops = _parse_ops(data)
    if inline_ops:
        provider_plans.append(Plan(name=f"{name}:inline", ops=inline_ops))

    skip_keys = {"use", "include"} | set(_STRATEGY_MAP.keys())
    try:
        settings = interpolate_attrs(
            {k: v for k, v in data.items() if k not in skip_keys},
            required=REQUIRED_SETTINGS,
        )
    except ValueError as exc:
        raise ValueError(f"Provider '{name}': {exc}") from exc
    return provider_type(name=name, plans=provider_plans, **settings)


class Workspace[P: Provider](Mapping[str, P]):
    """Accumulates parsed HCL data and resolves providers on access."""

    def __init__(
        self,
        provider_type: type[P] = Provider,  # type: ignore[assignment]
        context: dict[str, Any] | None = None,
    ) -> None:
        self._provider_type = provider_type
        self._context = context
        self._pending_plans: dict[str, dict[str, Any]] = {}
        self._pending_providers: dict[str, dict[str, Any]] = {}

    def load(self, data: dict[str, Any]) -> None:
        """Extract plan and provider blocks from a parsed data dict.

        Raises ValueError if any plan or provider name is already loaded.
        """
        for plan_block in data.get("plan", []):
            for plan_name, plan_data in plan_block.items():
                if plan_name in self._pending_plans:
                    raise ValueError(f"Duplicate plan: '{plan_name}'")
                logger.debug("Found plan '%s'", plan_name)
                self._pending_plans[plan_name] = plan_data

        for provider_block in data.get("provider", []):
            for provider_name, provider_data in provider_block.items():
                if provider_name in self._pending_providers:
                    raise ValueError(f"Duplicate provider: '{provider_name}'")
                logger.debug("Found provider '%s'", provider_name)
                self._pending_providers[provider_name] = provider_data

    def scan(self, path: str | Path, *, recurse: bool = True) -> None:
        """Load every .hcl file under path; a missing directory loads nothing."""
        root = Path(path)
        if not root.is_dir():
            logger.warning("Config directory '%s' not found", root)
            return
        files = sorted(root.rglob("*.hcl") if recurse else root.glob("*.hcl"))
        for file in files:
            logger.debug("Loading %s", file)
            self.load(load(file, context=self._context))

    def _resolve(self) -> dict[str, P]:
        """Resolve all pending plans and build typed provider instances."""
        logger.debug(
            "Resolving %d plan(s) and %d provider(s)",
            len(self._pending_plans),
            len(self._pending_providers),
        )

        resolved_plans: dict[str, Plan] = {}
        for name in self._pending_plans:
            _resolve_plan(name, self._pending_plans, resolved_plans, set())

        return {
            name: _build_provider(name, data, resolved_plans, provider_type=self._provider_type)
            for name, data in self._pending_providers.items()
        }

    def __getitem__(self, name: str) -> P:
        return self._resolve()[name]

    def __contains__(self, name: object) -> bool:
        return name in self._pending_providers

    def __iter__(self) -> Iterator[str]:
        return iter(self._pending_providers)

    def __len__(self) -> int:
        return len(self._pending_providers)

    @overload
    def get(self, name: str) -> P | None: ...
    @overload
    def get(self, name: str, default: P) -> P: ...
    @overload
    def get(self, name: str, default: None) -> P | None: ...
    def get(self, name: str, default: Any = None) -> P | None:
        if name not in self._pending_providers:
            return default
        return self._resolve()[name]

    def filter(self, names: Iterable[str]) -> list[P]:
        """Return providers matching the given names, preserving input order."""
        resolved = self._resolve()
        return [p for n in names if (p := resolved.get(n)) is not None]

    def __repr__(self) -> str:
        type_name = self._provider_type.__name__
        return (
            f"Workspace(provider_type={type_name}, plans={len(self._pending_plans)}, "
            f"providers={len(self._pending_providers)})"
        )


def scan[P: Provider](
    path: str | Path,
    *,
    provider_type: type[P] = Provider,  # type: ignore[assignment]
    recurse: bool = True,
    context: dict[str, Any] | None = None,
) -> Workspace[P]:
    """Scan a directory for .hcl files and return a ready Workspace."""
    ws = Workspace(provider_type=provider_type, context=context)
    ws.scan(path, recurse=recurse)
    return ws
