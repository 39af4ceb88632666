"""Declarative attribute schema derived from pydantic models."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from pydantic import BaseModel
from pydantic.fields import FieldInfo

_TYPE_NAMES: dict[Any, str] = {
    str: "string",
    bool: "bool",
    int: "number",
    float: "number",
}


@dataclass
class Attribute:
    """One configurable or computed attribute of a provider or resource."""

    name: str
    type: str
    required: bool = False
    default: Any = None
    env: str | None = None
    description: str = ""
    force_new: bool = False
    sensitive: bool = False
    computed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _extra(info: FieldInfo) -> dict[str, Any]:
    extra = info.json_schema_extra
    return extra if isinstance(extra, dict) else {}


def attribute(name: str, info: FieldInfo) -> Attribute:
    """Describe a single pydantic field."""
    extra = _extra(info)
    required = bool(extra.get("required", info.is_required()))
    default = None if info.is_required() or info.default_factory is not None else info.default
    if default is None and "fallback" in extra:
        default = extra["fallback"]
    return Attribute(
        name=name,
        type=_TYPE_NAMES.get(info.annotation, "string"),
        required=required,
        default=default,
        env=extra.get("env"),
        description=info.description or "",
        force_new=bool(extra.get("force_new", False)),
        sensitive=bool(extra.get("sensitive", False)),
        computed=bool(extra.get("computed", False)),
    )


def describe(model: type[BaseModel], *, exclude: set[str] | None = None) -> list[Attribute]:
    """Describe every field of a model, in declaration order."""
    skip = exclude or set()
    return [attribute(name, info) for name, info in model.model_fields.items() if name not in skip]


def force_new_fields(model: type[BaseModel]) -> frozenset[str]:
    """Names of the fields that cannot change once a resource is tracked."""
    return frozenset(name for name, info in model.model_fields.items() if _extra(info).get("force_new"))


def computed_fields(model: type[BaseModel]) -> tuple[str, ...]:
    """Names of the fields filled in from service responses."""
    return tuple(name for name, info in model.model_fields.items() if _extra(info).get("computed"))


def sensitive_fields(model: type[BaseModel]) -> frozenset[str]:
    """Names of the fields whose values must not be shown by default."""
    return frozenset(name for name, info in model.model_fields.items() if _extra(info).get("sensitive"))
