"""
wtlibs CLI

Read-only inspection of ledger-backed hotels and their off-chain documents.

Commands:
  fetch   - Resolve an off-chain document graph
  hotel   - Show one hotel with its off-chain data
  hotels  - List hotels registered in the index
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import sys
from pathlib import Path
from typing import Any, Iterable, Optional

import click

from .config import WTLibsConfig
from .errors import WTLibsError
from .libs import WTLibs
from .pointer import FieldSchema, StoragePointer

VERSION = "0.4.0"


def _schema_from_paths(paths: Iterable[str]) -> list[FieldSchema]:
    """Build a pointer schema from dotted paths (``a``, ``a.b``)."""
    tree: dict[str, dict] = {}
    for path in paths:
        node = tree
        for part in path.split("."):
            node = node.setdefault(part, {})

    def build(node: dict) -> list[FieldSchema]:
        return [FieldSchema.pointer(name, build(children)) for name, children in node.items()]

    return build(tree)


def _json_default(value: Any) -> Any:
    if isinstance(value, StoragePointer):
        return {"ref": value.ref}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, sort_keys=True, default=_json_default))


def _run(coro_factory) -> Any:
    try:
        return asyncio.run(coro_factory())
    except WTLibsError as exc:
        click.secho(f"Error: {exc}", fg="red", err=True)
        sys.exit(exc.exit_code)


# ============ Main CLI Group ============


@click.group()
@click.version_option(version=VERSION, prog_name="wtlibs")
@click.option("--rpc-url", envvar="WT_RPC_URL", default=None, help="Ethereum JSON-RPC URL")
@click.option("--index", "index_address", envvar="WT_INDEX_ADDRESS", default=None, help="WTIndex address")
@click.option(
    "--offchain-root",
    envvar="WT_OFFCHAIN_ROOT",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory served under file://",
)
@click.pass_context
def cli(
    ctx: click.Context,
    rpc_url: Optional[str],
    index_address: Optional[str],
    offchain_root: Optional[Path],
) -> None:
    """wtlibs - ledger-backed hotel data."""
    try:
        config = WTLibsConfig.from_env()
    except WTLibsError as exc:
        click.secho(f"Error: {exc}", fg="red", err=True)
        sys.exit(exc.exit_code)
    overrides = {
        "rpc_url": rpc_url,
        "index_address": index_address,
        "offchain_root": offchain_root,
    }
    ctx.obj = dataclasses.replace(
        config, **{key: value for key, value in overrides.items() if value is not None}
    )


@cli.command()
@click.argument("uri")
@click.option("--pointer", "pointers", multiple=True, help="Field holding a linked document (dot path)")
@click.option("--resolve", "resolved", multiple=True, help="Only inline these pointer paths")
@click.pass_obj
def fetch(config: WTLibsConfig, uri: str, pointers: tuple[str, ...], resolved: tuple[str, ...]) -> None:
    """Download URI and print its document graph as JSON."""

    async def go() -> Any:
        async with WTLibs(config) as libs:
            pointer = libs.storage_pointer(uri, _schema_from_paths(pointers))
            return await pointer.to_plain_object(list(resolved) or None)

    _echo_json(_run(go))


@cli.command()
@click.argument("address")
@click.option("--resolve", "resolved", multiple=True, help="Only inline these off-chain paths")
@click.pass_obj
def hotel(config: WTLibsConfig, address: str, resolved: tuple[str, ...]) -> None:
    """Show the hotel at ADDRESS."""

    async def go() -> Any:
        async with WTLibs(config) as libs:
            found = await libs.get_index().get_hotel(address)
            return await found.to_plain_object(list(resolved) or None)

    _echo_json(_run(go))


@cli.command()
@click.pass_obj
def hotels(config: WTLibsConfig) -> None:
    """List hotel addresses registered in the index."""

    async def go() -> list[str]:
        async with WTLibs(config) as libs:
            return [h.address for h in await libs.get_index().get_all_hotels()]

    for address in _run(go):
        click.echo(address)


if __name__ == "__main__":
    cli()
