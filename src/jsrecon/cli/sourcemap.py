"""CLI command: jsrecon sourcemap <url> — rebuild original sources from a map."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any

import click
from rich.tree import Tree

from jsrecon.cli.common import console, load_context, make_fetcher
from jsrecon.sourcemap.reconstructor import (
    ERROR_LOG_KEY,
    SourceMapReconstructor,
    build_file_tree,
    safe_output_path,
)

logger = logging.getLogger(__name__)


@click.command()
@click.argument("url")
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory to write the reconstructed files into.",
)
@click.pass_context
def sourcemap(ctx: click.Context, url: str, output: str | None) -> None:
    """Reconstruct the source tree referenced by a source map URL."""
    config, _ = load_context(ctx)

    async def _run() -> dict[str, str]:
        async with make_fetcher(config) as fetcher:
            return await SourceMapReconstructor(fetcher).reconstruct(url)

    files = asyncio.run(_run())

    if ERROR_LOG_KEY in files:
        console.print(f"[red]{files[ERROR_LOG_KEY]}[/red]")
        sys.exit(1)

    missing = sum(1 for text in files.values() if text.startswith("// [jsrecon] Skipping"))
    tree = Tree(f"[bold]{url}[/bold]")
    _add_nodes(tree, build_file_tree(files))
    console.print(tree)
    console.print(
        f"\n{len(files)} file(s) reconstructed, {missing} unavailable"
    )

    if output:
        written = 0
        for path, text in files.items():
            try:
                target = safe_output_path(output, path)
            except ValueError as exc:
                logger.warning("Not writing %s: %s", path, exc)
                continue
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(text, encoding="utf-8")
            except OSError as exc:
                logger.warning("Could not write %s: %s", target, exc)
                continue
            written += 1
        console.print(f"Wrote {written} file(s) to [cyan]{output}[/cyan]")


def _add_nodes(node: Tree, subtree: dict[str, Any]) -> None:
    """Folders first, then files, each group alphabetical."""
    folders = sorted(k for k, v in subtree.items() if isinstance(v, dict))
    leaves = sorted(k for k, v in subtree.items() if not isinstance(v, dict))
    for name in folders:
        _add_nodes(node.add(f"[bold blue]{name}/[/bold blue]"), subtree[name])
    for name in leaves:
        node.add(name)
