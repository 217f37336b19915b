"""CLI command: jsrecon rules — show the active secret rules."""

from __future__ import annotations

import click
from rich.table import Table

from jsrecon.cli.common import console, load_context
from jsrecon.scanner.patterns import build_secret_rules
from jsrecon.scanner.rules import filter_rules, load_secret_rules


@click.command()
@click.option(
    "--file",
    "-f",
    "rules_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Rule YAML to inspect instead of the built-in catalog.",
)
@click.pass_context
def rules(ctx: click.Context, rules_file: str | None) -> None:
    """List secret rules after applying excluded rule ids."""
    _, settings = load_context(ctx)
    try:
        definitions = load_secret_rules(rules_file)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    active = build_secret_rules(filter_rules(definitions, settings.excluded_rule_ids))

    table = Table(title="Secret rules")
    table.add_column("ID", style="cyan")
    table.add_column("Group", justify="right")
    table.add_column("Entropy", justify="right")
    table.add_column("Description")

    for rule in active:
        rule_id = rule.rule_id
        if rule.regex is None:
            rule_id += " [red](invalid)[/red]"
        table.add_row(
            rule_id,
            str(rule.group),
            f"{rule.entropy:g}",
            rule.rule.description,
        )

    console.print(table)
    console.print(
        f"\n{len(active)} active, {len(definitions) - len(active)} excluded"
    )
