"""CLI command: jsrecon scan <targets> — pattern scan of pages, scripts and files."""

from __future__ import annotations

import asyncio
import hashlib
import json
import sys
import time
from pathlib import Path
from urllib.parse import urlsplit

import click
from rich.progress import Progress
from rich.table import Table

from jsrecon.cache import LRUCache
from jsrecon.cli.common import console, load_context, make_fetcher
from jsrecon.config import JsReconConfig, Settings
from jsrecon.fetch.throttle import ThrottledFetcher
from jsrecon.scanner.domain import is_scannable
from jsrecon.scanner.engine import ScanEngine, apply_dependency_confusion
from jsrecon.scanner.models import CompiledRule, ContentSource, ScanResult
from jsrecon.scanner.page import looks_like_html, split_page
from jsrecon.scanner.patterns import (
    DEPENDENCY_CONFUSION,
    POTENTIAL_NPM_PACKAGES,
    POTENTIAL_SECRETS,
    build_secret_rules,
    get_patterns,
)
from jsrecon.scanner.rules import filter_rules, load_secret_rules
from jsrecon.scanner.worker import passive_result, perform_passive_scan, prepare_sources
from jsrecon.storage.db import get_db
from jsrecon.storage.repos import PASSIVE_PREFIX, SCAN_PREFIX, ScanCacheRepo

_CATEGORY_COLORS = {
    POTENTIAL_SECRETS: "red",
    DEPENDENCY_CONFUSION: "red",
}


@click.command()
@click.argument("targets", nargs=-1, required=True)
@click.option(
    "--hostname",
    "-H",
    default=None,
    help="Host that scopes subdomain findings (default: first URL's host).",
)
@click.option(
    "--json",
    "json_out",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the full result record to this file.",
)
@click.option("--no-cache", is_flag=True, help="Ignore and do not update cached results.")
@click.option(
    "--npm-check/--no-npm-check",
    default=None,
    help="Check scoped npm packages against the public registry.",
)
@click.option(
    "--passive",
    is_flag=True,
    help="Only run the secret rules over the raw content; cached for longer.",
)
@click.pass_context
def scan(
    ctx: click.Context,
    targets: tuple[str, ...],
    hostname: str | None,
    json_out: str | None,
    no_cache: bool,
    npm_check: bool | None,
    passive: bool,
) -> None:
    """Scan URLs or local files for endpoints, secrets and other findings."""
    config, settings = load_context(ctx)
    if not settings.scanning_enabled:
        console.print("[yellow]Scanning is disabled in settings.[/yellow]")
        return

    seen = LRUCache(config.scanned_pages_cache_limit)
    urls: list[str] = []
    files: list[Path] = []
    for target in targets:
        if target in seen:
            continue
        seen.set(target, True)
        if target.startswith(("http://", "https://")):
            if is_scannable(target, settings.excluded_domains):
                urls.append(target)
            else:
                console.print(f"[dim]Skipping excluded URL {target}[/dim]")
        elif Path(target).is_file():
            files.append(Path(target))
        else:
            raise click.BadParameter(
                f"{target} is neither a URL nor a file", param_hint="TARGETS"
            )

    if not urls and not files:
        console.print("[yellow]Nothing to scan.[/yellow]")
        return

    if hostname is None and urls:
        hostname = urlsplit(urls[0]).hostname

    if passive:
        npm_check = False
    elif npm_check is None:
        npm_check = settings.npm_dependency_scan

    console.print(
        f"[bold]jsrecon[/bold] scanning [cyan]{len(urls) + len(files)}[/cyan] "
        f"target(s), scope [cyan]{hostname or 'none'}[/cyan]\n"
    )

    cache_key = _cache_key(passive, hostname, urls, files)
    result = asyncio.run(
        _run(
            config, settings, urls, files, hostname, npm_check, cache_key, no_cache, passive
        )
    )

    if json_out:
        Path(json_out).write_text(
            json.dumps(result.to_cache_record(), indent=2), encoding="utf-8"
        )
        console.print(f"Results written to [cyan]{json_out}[/cyan]")

    _print_results(result)

    if result.results.get(POTENTIAL_SECRETS) or result.results.get(DEPENDENCY_CONFUSION):
        sys.exit(1)


def _cache_key(
    passive: bool, hostname: str | None, urls: list[str], files: list[Path]
) -> str:
    if passive and len(urls) == 1 and not files:
        return f"{PASSIVE_PREFIX}{urls[0]}"
    parts = sorted(urls) + sorted(str(f.resolve()) for f in files)
    digest = hashlib.sha256("\n".join(parts).encode("utf-8")).hexdigest()[:16]
    prefix = PASSIVE_PREFIX if passive else SCAN_PREFIX
    return f"{prefix}{hostname or 'local'}:{digest}"


async def _run(
    config: JsReconConfig,
    settings: Settings,
    urls: list[str],
    files: list[Path],
    hostname: str | None,
    npm_check: bool,
    cache_key: str,
    no_cache: bool,
    passive: bool = False,
) -> ScanResult:
    if passive:
        prefix, max_age = PASSIVE_PREFIX, config.passive_cache_max_age
    else:
        prefix, max_age = SCAN_PREFIX, config.cache_max_age

    db = await get_db(config.db_path)
    try:
        repo = ScanCacheRepo(db)
        await repo.clear_stale(prefix, max_age)
        if not no_cache:
            cached = await repo.get(cache_key, max_age=max_age)
            if cached is not None:
                console.print("[dim]Using cached results.[/dim]")
                return cached

        rules = filter_rules(load_secret_rules(), settings.excluded_rule_ids)

        async with make_fetcher(config) as fetcher:
            sources = [
                ContentSource(
                    source=str(f), code=f.read_text(encoding="utf-8", errors="replace")
                )
                for f in files
            ]
            sources.extend(await _gather_url_sources(fetcher, urls, settings))
            sources, content_map = prepare_sources(sources, config.max_content_size_bytes)

            if passive:
                result = await _passive_scan(
                    sources, content_map, build_secret_rules(rules), config
                )
            else:
                engine = ScanEngine(
                    get_patterns(parameters=settings.parameters, secret_rules=rules),
                    hostname=hostname,
                    regex_timeout_ms=config.regex_timeout_ms,
                )
                with Progress(console=console, transient=True) as progress:
                    task = progress.add_task("Scanning", total=len(sources))
                    result = await engine.scan(
                        sources,
                        on_progress=lambda done, total: progress.update(
                            task, completed=done
                        ),
                    )

            if npm_check:
                names = list(result.results.get(POTENTIAL_NPM_PACKAGES, {}))
                missing = await fetcher.verify_npm_packages(names) if names else []
                apply_dependency_confusion(result, missing)

        if not no_cache:
            await repo.set(cache_key, result, config.max_cache_size_bytes)
        return result
    finally:
        await db.close()


async def _passive_scan(
    sources: list[ContentSource],
    content_map: dict[str, str],
    rules: list[CompiledRule],
    config: JsReconConfig,
) -> ScanResult:
    """Secret rules only, over the raw content; content is dropped when nothing is found."""
    start = time.time()
    findings = await perform_passive_scan(sources, rules, config.regex_timeout_ms)
    result = passive_result(findings, content_map)
    result.sources_scanned = sum(1 for s in sources if not s.is_too_large)
    result.sources_skipped = len(sources) - result.sources_scanned
    result.duration = time.time() - start
    return result


async def _gather_url_sources(
    fetcher: ThrottledFetcher,
    urls: list[str],
    settings: Settings,
) -> list[ContentSource]:
    """Fetch each target; HTML pages contribute their inline and external scripts."""
    sources: list[ContentSource] = []
    scripts: list[str] = []
    bodies = await asyncio.gather(*(fetcher.fetch_text(u) for u in urls))

    for url, body in zip(urls, bodies):
        if not body:
            console.print(f"[yellow]Could not fetch {url}[/yellow]")
            continue
        if not looks_like_html(body):
            sources.append(ContentSource(source=url, code=body))
            continue

        prefix = "" if len(urls) == 1 else f"{url} "
        page_sources, external = split_page(body, url, prefix=prefix)
        sources.extend(page_sources)
        for script in external:
            if script in scripts or script in urls:
                continue
            if is_scannable(script, settings.excluded_domains):
                scripts.append(script)

    sources.extend(await fetcher.fetch_scripts(scripts))
    return sources


def _print_results(result: ScanResult) -> None:
    for category, values in result.results.items():
        if not values:
            continue
        color = _CATEGORY_COLORS.get(category, "cyan")
        table = Table(title=f"[{color}]{category}[/{color}]", show_lines=False)
        table.add_column("Value", max_width=60)
        table.add_column("Count", justify="right")
        table.add_column("First seen", style="dim")

        for value, occurrences in values.items():
            first = occurrences[0]
            table.add_row(
                value[:60],
                str(len(occurrences)),
                f"{first.source}:{first.line}:{first.column}",
            )
        console.print(table)

    console.print(
        f"\nScanned {result.sources_scanned} sources "
        f"({result.sources_skipped} skipped) "
        f"in {result.duration:.2f}s"
    )
    console.print(f"Total findings: {result.total_findings()}")
