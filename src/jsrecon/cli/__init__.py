"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click

from jsrecon import __version__


@click.group()
@click.version_option(version=__version__, prog_name="jsrecon")
@click.option(
    "--settings",
    "-s",
    "settings_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a settings YAML file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, settings_path: str | None, verbose: bool) -> None:
    """jsrecon — find endpoints, secrets and source maps in JavaScript."""
    ctx.ensure_object(dict)
    ctx.obj["settings_path"] = settings_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _register_commands() -> None:
    from jsrecon.cli.nextjs import nextjs  # noqa: F811
    from jsrecon.cli.npm import npm_check  # noqa: F811
    from jsrecon.cli.rules import rules  # noqa: F811
    from jsrecon.cli.scan import scan  # noqa: F811
    from jsrecon.cli.server import server  # noqa: F811
    from jsrecon.cli.sourcemap import sourcemap  # noqa: F811

    main.add_command(scan)
    main.add_command(sourcemap)
    main.add_command(nextjs)
    main.add_command(npm_check)
    main.add_command(rules)
    main.add_command(server)


_register_commands()
