"""Configuration files — Jinja2 rendering, HCL parsing and ${...} references.

Every ``.hcl`` file is first rendered as a Jinja2 template (undefined names
are errors) and then parsed with python-hcl2. String attribute values may
refer to the environment as ``${env.NAME}`` and to the working directory as
``${CWD}``; references are expanded when blocks are decoded, not at parse
time, so a file can be scanned without the variables its providers need.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Collection, Mapping
from pathlib import Path
from typing import Any

import hcl2
import jinja2
from lark import LarkError

logger = logging.getLogger(__name__)

_REFERENCE = re.compile(r"\$\{(?:env\.(?P<env>\w+)|(?P<name>\w+))\}")

_templates = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


class UnsetVariableError(ValueError):
    """A required value refers to an environment variable that is not set."""

    def __init__(self, variable: str) -> None:
        super().__init__(f"environment variable '{variable}' is not set")
        self.variable = variable


def render(text: str, context: Mapping[str, Any] | None = None, *, source: str = "<string>") -> str:
    try:
        return _templates.from_string(text).render(dict(context or {}))
    except jinja2.TemplateError as exc:
        raise ValueError(f"{source}: {exc}") from exc


def parse(text: str, *, source: str = "<string>") -> dict[str, Any]:
    """Parse HCL text into the block structure python-hcl2 produces."""
    try:
        return hcl2.loads(text)
    except LarkError as exc:
        raise ValueError(f"{source}: {exc}") from exc


def load(file: Path, *, context: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Render and parse a single configuration file."""
    source = str(file)
    return parse(render(file.read_text(), context, source=source), source=source)


def interpolate(value: Any, *, required: bool = False) -> Any:
    """Expand ${env.NAME} and ${CWD} references in a string value.

    An unset variable expands to an empty string with a warning, or raises
    UnsetVariableError when the value is required. Unknown names are kept.
    """
    if not isinstance(value, str) or "${" not in value:
        return value

    def expand(match: re.Match) -> str:
        if (var := match.group("env")) is not None:
            if var in os.environ:
                return os.environ[var]
            if required:
                raise UnsetVariableError(var)
            logger.warning("Environment variable '%s' is not set", var)
            return ""
        if match.group("name") == "CWD":
            return os.getcwd()
        logger.warning("Unknown reference '%s'", match.group(0))
        return match.group(0)

    return _REFERENCE.sub(expand, value)


def interpolate_attrs(attrs: Mapping[str, Any], *, required: Collection[str] = ()) -> dict[str, Any]:
    """Expand references in every attribute; names in required must resolve."""
    expanded: dict[str, Any] = {}
    for key, value in attrs.items():
        try:
            expanded[key] = interpolate(value, required=key in required)
        except UnsetVariableError as exc:
            raise ValueError(f"'{key}' references unset environment variable '{exc.variable}'") from exc
    return expanded
