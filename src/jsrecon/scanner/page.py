"""Split a fetched HTML page into the content sources a scan runs over."""

from __future__ import annotations

import re
from urllib.parse import urljoin

from jsrecon.scanner.models import ContentSource

MAIN_DOCUMENT = "Main HTML Document"

_SCRIPT = re.compile(r"<script\b([^>]*)>(.*?)</script\s*>", re.IGNORECASE | re.DOTALL)
_SRC_ATTR = re.compile(r"""\bsrc\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""", re.IGNORECASE)


def looks_like_html(text: str) -> bool:
    head = text[:1024].lstrip().lower()
    return head.startswith(("<!doctype html", "<html")) or "<script" in head


def split_page(
    html: str,
    page_url: str,
    prefix: str = "",
) -> tuple[list[ContentSource], list[str]]:
    """Return the document and inline scripts, plus external script URLs.

    Inline scripts are numbered from 1 in document order; external URLs are
    resolved against ``page_url`` and deduplicated. ``prefix`` keeps labels
    distinct when several pages are scanned together.
    """
    sources = [ContentSource(source=prefix + MAIN_DOCUMENT, code=html)]
    external: list[str] = []
    inline_count = 0

    for match in _SCRIPT.finditer(html):
        attrs, body = match.group(1), match.group(2)
        src = _SRC_ATTR.search(attrs)
        if src:
            value = next(g for g in src.groups() if g is not None).strip()
            if value and not value.startswith(("data:", "javascript:")):
                url = urljoin(page_url, value)
                if url not in external:
                    external.append(url)
        elif body.strip():
            inline_count += 1
            label = f"{prefix}Inline Script #{inline_count}"
            sources.append(ContentSource(source=label, code=body))

    return sources, external
