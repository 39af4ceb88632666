"""greenops CLI — apply cluster configuration from HCL files.

Commands:
    apply       Create missing clusters and rotate keys where requested
    destroy     Delete every declared cluster
    status      Show whether each declared cluster exists
    output      Show the stored API keys of applied clusters
    schema      Print the provider and resource schema as JSON

Generated keys are kept in a state file (``greenops.state.json`` under the
config directory unless ``--state`` says otherwise) and masked on screen
unless ``--show-keys`` is given.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import click
import httpx

from greenops import __version__
from greenops.errors import GreenOpsError
from greenops.provider import Provider
from greenops.resource import Resource, _resource_registry
from greenops.schema import computed_fields, sensitive_fields
from greenops.state import DEFAULT_STATE_FILE, State
from greenops.workspace import scan

DEFAULT_CONFIG = "."
MASK = "(sensitive)"


def _select(path: str, names: tuple[str, ...]) -> list[Provider]:
    """Load the workspace and pick the requested providers (all by default)."""
    ws = scan(path)
    if not names:
        return ws.filter(ws)
    missing = [n for n in names if n not in ws]
    if missing:
        raise click.ClickException(f"Unknown provider(s): {', '.join(missing)}")
    return ws.filter(names)


def _run(action) -> None:
    try:
        action()
    except (GreenOpsError, httpx.HTTPError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


def _state_path(path: str, state_file: Path | None) -> Path:
    return state_file if state_file is not None else Path(path) / DEFAULT_STATE_FILE


def _show(prefix: str, values: dict[str, Any], sensitive: frozenset[str], show_keys: bool) -> None:
    for name, value in values.items():
        shown = MASK if name in sensitive and not show_keys else value
        click.echo(f"{prefix}.{name} = {shown}")


def _show_resource(provider: Provider, res: Resource, show_keys: bool) -> None:
    _show(f"{provider.name}/{res.label}", res.outputs(), sensitive_fields(type(res)), show_keys)


def _stored_type(key: str) -> type[Resource] | None:
    kind = key.split("/")[1]
    return next((cls for cls in _resource_registry.values() if cls.__name__.lower() == kind), None)


state_option = click.option(
    "--state",
    "state_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help=f"State file (default: PATH/{DEFAULT_STATE_FILE}).",
)
show_keys_option = click.option("--show-keys", is_flag=True, help="Print API keys instead of masking them.")


# --- Root group ---


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", count=True, help="Increase log output (repeatable).")
def cli(verbose: int) -> None:
    """GreenOps: manage cluster registrations and agent API keys."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


# --- apply / destroy ---


@cli.command()
@click.argument("path", default=DEFAULT_CONFIG, type=click.Path(file_okay=False))
@click.option("--provider", "names", multiple=True, help="Only apply this provider (repeatable).")
@click.option("--dry-run", is_flag=True, help="Show what would change without calling the service.")
@state_option
@show_keys_option
def apply(
    path: str,
    names: tuple[str, ...],
    dry_run: bool,
    state_file: Path | None,
    show_keys: bool,
) -> None:
    """Create or update the clusters declared under PATH."""
    state_path = _state_path(path, state_file)

    def action() -> None:
        state = State.load(state_path)
        try:
            for provider in _select(path, names):
                for res in provider.apply(state=state, dry_run=dry_run):
                    _show_resource(provider, res, show_keys)
                click.echo(f"{provider.name}: applied")
        finally:
            if not dry_run:
                state.save(state_path)

    _run(action)


@cli.command()
@click.argument("path", default=DEFAULT_CONFIG, type=click.Path(file_okay=False))
@click.option("--provider", "names", multiple=True, help="Only destroy this provider (repeatable).")
@click.option("--dry-run", is_flag=True, help="Show what would be deleted without calling the service.")
@state_option
def destroy(path: str, names: tuple[str, ...], dry_run: bool, state_file: Path | None) -> None:
    """Delete the clusters declared under PATH."""
    state_path = _state_path(path, state_file)

    def action() -> None:
        state = State.load(state_path)
        try:
            for provider in _select(path, names):
                provider.destroy(state=state, dry_run=dry_run)
                click.echo(f"{provider.name}: destroyed")
        finally:
            if not dry_run:
                state.save(state_path)

    _run(action)


# --- status / output ---


@cli.command()
@click.argument("path", default=DEFAULT_CONFIG, type=click.Path(file_okay=False))
@click.option("--provider", "names", multiple=True, help="Only check this provider (repeatable).")
def status(path: str, names: tuple[str, ...]) -> None:
    """Show whether each declared cluster exists."""

    def action() -> None:
        for provider in _select(path, names):
            for label, present in provider.status().items():
                click.echo(f"{provider.name}/{label}: {'present' if present else 'absent'}")

    _run(action)


@cli.command()
@click.argument("path", default=DEFAULT_CONFIG, type=click.Path(file_okay=False))
@click.option("--provider", "name", help="Only show this provider.")
@state_option
@show_keys_option
def output(path: str, name: str | None, state_file: Path | None, show_keys: bool) -> None:
    """Show the computed values stored by earlier applies."""

    def action() -> None:
        state = State.load(_state_path(path, state_file))
        prefix = f"{name}/" if name else ""
        for key, saved in state.outputs(prefix).items():
            res_cls = _stored_type(key)
            if res_cls is None:
                continue
            values = {field: saved[field] for field in computed_fields(res_cls) if field in saved}
            provider_name, _, label = key.split("/", 2)
            _show(f"{provider_name}/{label}", values, sensitive_fields(res_cls), show_keys)

    _run(action)


# --- schema ---


@cli.command()
def schema() -> None:
    """Print the provider and resource schema as JSON."""
    click.echo(json.dumps(Provider.registration(), indent=2))


def main() -> None:
    cli()
