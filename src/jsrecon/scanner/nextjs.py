"""Next.js route discovery from ``__NEXT_DATA__`` and the build manifest."""

from __future__ import annotations

import json
import logging
import re
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

_NEXT_DATA = re.compile(
    r'<script id="__NEXT_DATA__" type="application/json">(.+?)</script>',
    re.DOTALL,
)
_MANIFEST_ROUTE = re.compile(r'"(/[^"]*)"\s*:')


def extract_nextjs_data(html: str, page_url: str) -> tuple[str | None, str | None]:
    """Return ``(manifest_url, build_id)`` or ``(None, None)``."""
    match = _NEXT_DATA.search(html)
    if not match:
        return None, None

    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as exc:
        logger.warning("Could not parse __NEXT_DATA__ JSON: %s", exc)
        return None, None

    build_id = data.get("buildId") if isinstance(data, dict) else None
    if not build_id or not isinstance(build_id, str):
        logger.warning("Found __NEXT_DATA__ but it is missing a valid buildId")
        return None, None

    base = data.get("assetPrefix")
    if not base:
        parts = urlsplit(page_url)
        base = f"{parts.scheme}://{parts.netloc}"
    manifest_url = f"{base.rstrip('/')}/_next/static/{build_id}/_buildManifest.js"
    return manifest_url, build_id


def parse_build_manifest(code: str) -> list[str]:
    """Routes declared in a ``_buildManifest.js``, minus internal and catch-all ones."""
    routes = [m.group(1) for m in _MANIFEST_ROUTE.finditer(code)]
    return [
        r
        for r in routes
        if not r.startswith("/_") and "[..." not in r and "[[..." not in r
    ]
