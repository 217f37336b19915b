"""Rebuild original source files from a JavaScript source map.

A map that lists fifty files of which three are unreachable still yields
forty-seven files plus three placeholder entries: per-file failures are
recorded in place and never abort the reconstruction.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import urljoin, urlsplit

from jsrecon.fetch.throttle import NOT_FOUND, ThrottledFetcher

logger = logging.getLogger(__name__)

ERROR_LOG_KEY = "jsrecon.buddy.error.log"

MapFetcher = Callable[[str], Awaitable[Any]]


class SourceMapReconstructor:
    """Fetches a source map and every source it references."""

    def __init__(
        self,
        fetcher: ThrottledFetcher,
        fetch_map: MapFetcher | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._fetch_map = fetch_map or fetcher.fetch_json

    async def reconstruct(self, url: str) -> dict[str, str]:
        """Return ``{source path: file text or placeholder}``."""
        data = await self._fetch_map(url)

        if data is None or data == NOT_FOUND:
            logger.warning("Source map not found at %s", url)
            return {ERROR_LOG_KEY: f"Source map not found at {url}"}

        sources = data.get("sources") if isinstance(data, dict) else None
        if not isinstance(sources, list):
            logger.warning("Source map at %s has no sources array", url)
            return {
                ERROR_LOG_KEY: (
                    f"The source map at {url} does not contain a 'sources' array."
                )
            }

        inline = data.get("sourcesContent")
        if not isinstance(inline, list):
            inline = []

        contents = await asyncio.gather(
            *(
                self._resolve(url, path, inline[i] if i < len(inline) else None)
                for i, path in enumerate(sources)
            )
        )

        files: dict[str, str] = {}
        for path, text in zip(sources, contents):
            files[str(path)] = text
        return files

    async def _resolve(self, map_url: str, path: Any, inline: Any) -> str:
        if inline is not None:
            return str(inline)

        path = str(path)
        response = await self._fetcher.fetch_response(urljoin(map_url, path))
        if response is not None and response.ok:
            return response.text

        status = response.status if response is not None else "network error"
        logger.debug("Missing source file %s (%s)", path, status)
        return f"// [jsrecon] Skipping missing source file: {path}. Status: {status}"


def _clean_parts(source_path: str) -> list[str]:
    """Path segments of a map source, without scheme noise or parent hops."""
    parts = urlsplit(source_path)
    if parts.scheme and parts.netloc:
        raw = parts.netloc + parts.path
    elif parts.scheme:
        # webpack:///./src/app.js and friends
        raw = source_path.split(":", 1)[1]
    else:
        raw = source_path
    return [p for p in PurePosixPath(raw).parts if p not in ("/", ".", "..", "")]


def build_file_tree(paths: Iterable[str]) -> dict[str, Any]:
    """Nest source paths into folders; file leaves map to ``None``."""
    tree: dict[str, Any] = {}
    for path in paths:
        if path == ERROR_LOG_KEY:
            continue
        parts = _clean_parts(path)
        if not parts:
            continue
        node = tree
        for folder in parts[:-1]:
            child = node.get(folder)
            if not isinstance(child, dict):
                child = {}
                node[folder] = child
            node = child
        node.setdefault(parts[-1], None)
    return tree


def safe_output_path(root: str | Path, source_path: str) -> Path:
    """Where a reconstructed file lands under ``root``.

    Raises ValueError when the path has no usable segments.
    """
    parts = _clean_parts(source_path)
    if not parts:
        raise ValueError(f"Cannot derive a file name from {source_path!r}")
    root = Path(root).resolve()
    target = root.joinpath(*parts).resolve()
    if root != target and root not in target.parents:
        raise ValueError(f"{source_path!r} escapes the output directory")
    return target
