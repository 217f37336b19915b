"""CLI command: jsrecon nextjs <url> — list routes from a Next.js build manifest."""

from __future__ import annotations

import asyncio
import sys

import click

from jsrecon.cli.common import console, load_context, make_fetcher
from jsrecon.scanner.nextjs import extract_nextjs_data, parse_build_manifest


@click.command()
@click.argument("url")
@click.pass_context
def nextjs(ctx: click.Context, url: str) -> None:
    """Discover page routes of a Next.js site."""
    config, _ = load_context(ctx)

    async def _run() -> tuple[bool, str | None, list[str] | None]:
        async with make_fetcher(config) as fetcher:
            html = await fetcher.fetch_text(url)
            if html is None:
                return False, None, None

            manifest_url, _ = extract_nextjs_data(html, url)
            if manifest_url is None:
                return True, None, None

            code = await fetcher.fetch_text(manifest_url)
            if code is None:
                return True, manifest_url, None
            return True, manifest_url, parse_build_manifest(code)

    fetched, manifest_url, routes = asyncio.run(_run())

    if not fetched:
        console.print(f"[red]Could not fetch {url}[/red]")
        sys.exit(1)

    if manifest_url is None:
        console.print("[yellow]No Next.js build data found on this page.[/yellow]")
        return
    if routes is None:
        console.print(f"[red]Build manifest unavailable at {manifest_url}[/red]")
        sys.exit(1)

    console.print(f"[bold]Build manifest[/bold] [cyan]{manifest_url}[/cyan]\n")
    for route in routes:
        console.print(f"  {route}")
    console.print(f"\n{len(routes)} route(s)")
