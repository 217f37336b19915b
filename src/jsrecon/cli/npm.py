"""CLI command: jsrecon npm-check <names> — dependency-confusion check."""

from __future__ import annotations

import asyncio
import sys

import click

from jsrecon.cli.common import console, load_context, make_fetcher


@click.command("npm-check")
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def npm_check(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Report packages that are not published on the public npm registry."""
    config, _ = load_context(ctx)

    async def _run() -> list[str]:
        async with make_fetcher(config) as fetcher:
            return await fetcher.verify_npm_packages(dict.fromkeys(names))

    missing = asyncio.run(_run())

    if not missing:
        console.print("[green]All packages exist on the public registry.[/green]")
        return

    console.print("[red]Unpublished packages (dependency confusion candidates):[/red]")
    for name in missing:
        console.print(f"  {name}")
    sys.exit(1)
