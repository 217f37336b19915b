"""CLI command: jsrecon server — start the local worker API."""

from __future__ import annotations

import click

from jsrecon.cli.common import console, load_context


@click.command()
@click.option(
    "--port",
    type=int,
    default=None,
    help="Port to listen on (default: 8471).",
)
@click.pass_context
def server(ctx: click.Context, port: int | None) -> None:
    """Serve the scan worker API on localhost."""
    try:
        import uvicorn
    except ImportError:
        console.print(
            "[red]Web dependencies not installed.[/red]\n"
            "Install with: pip install jsrecon[web]"
        )
        raise SystemExit(1)

    config, _ = load_context(ctx)
    if port is not None:
        config.web_port = port

    console.print(
        f"[bold]jsrecon[/bold] worker API starting on "
        f"[cyan]http://{config.web_host}:{config.web_port}[/cyan]"
    )
    console.print("  [dim]Bound to 127.0.0.1 only[/dim]\n")

    import asyncio

    from jsrecon.web.app import create_app

    async def _run() -> None:
        app = await create_app(config)
        server_config = uvicorn.Config(
            app,
            host=config.web_host,
            port=config.web_port,
            log_level="info",
        )
        srv = uvicorn.Server(server_config)
        await srv.serve()

    asyncio.run(_run())
