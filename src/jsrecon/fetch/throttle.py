"""Throttled HTTP fetching — bounded concurrency with a cooldown between slots.

Every request goes through one queue. At most ``max_concurrent`` requests
are in flight; when one finishes its slot is handed to the next queued
request only after ``request_delay_ms``. Failures resolve to sentinels
(``None`` / ``False`` / :data:`NOT_FOUND`) instead of raising.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any
from urllib.parse import quote

import aiohttp

from jsrecon.scanner.models import ContentSource

logger = logging.getLogger(__name__)

MAX_CONCURRENT_FETCHES = 3
REQUEST_DELAY_MS = 100

NPM_REGISTRY_URL = "https://registry.npmjs.org/"

# Returned by fetch_json when the document does not exist or cannot be fetched
NOT_FOUND: dict[str, str] = {"status": "not_found"}

_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class FetchResponse:
    """Status and body of a completed request."""

    url: str
    status: int
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


Transport = Callable[[str, str], Awaitable[FetchResponse]]


@dataclass
class _Pending:
    method: str
    url: str
    future: asyncio.Future


class ThrottledFetcher:
    """Queue-backed fetcher shared by script gathering and source-map reconstruction."""

    def __init__(
        self,
        max_concurrent: int = MAX_CONCURRENT_FETCHES,
        request_delay_ms: float = REQUEST_DELAY_MS,
        timeout: float = 30.0,
        transport: Transport | None = None,
    ) -> None:
        self._max_concurrent = max(1, max_concurrent)
        self._delay = request_delay_ms / 1000
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._transport = transport or self._aiohttp_request
        self._session: aiohttp.ClientSession | None = None
        self._queue: deque[_Pending] = deque()
        self._active = 0
        self._tasks: set[asyncio.Task] = set()

    async def __aenter__(self) -> ThrottledFetcher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    @property
    def active(self) -> int:
        """Requests currently in flight."""
        return self._active

    @property
    def pending(self) -> int:
        """Requests waiting for a slot."""
        return len(self._queue)

    # -- queue -------------------------------------------------------------

    async def request(self, url: str, method: str = "GET") -> FetchResponse | None:
        """Queue a request; ``None`` if it failed at the network level."""
        future = asyncio.get_running_loop().create_future()
        self._queue.append(_Pending(method=method, url=url, future=future))
        self._pump()
        return await future

    def _pump(self) -> None:
        while self._active < self._max_concurrent and self._queue:
            pending = self._queue.popleft()
            if pending.future.done():
                continue
            self._active += 1
            task = asyncio.ensure_future(self._run(pending))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, pending: _Pending) -> None:
        response: FetchResponse | None = None
        try:
            response = await self._transport(pending.method, pending.url)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Fetch error for %s: %s", pending.url, exc)
        finally:
            self._active -= 1
            asyncio.get_running_loop().call_later(self._delay, self._pump)
            if not pending.future.done():
                pending.future.set_result(response)

    async def _aiohttp_request(self, method: str, url: str) -> FetchResponse:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"User-Agent": _USER_AGENT},
            )
        async with self._session.request(method, url, allow_redirects=True) as resp:
            text = "" if method == "HEAD" else await resp.text(errors="replace")
            return FetchResponse(
                url=str(resp.url),
                status=resp.status,
                text=text,
                headers=dict(resp.headers),
            )

    # -- high-level helpers ------------------------------------------------

    async def fetch_text(self, url: str) -> str | None:
        """Body of a successful GET, else ``None``."""
        response = await self.request(url)
        if response is None or not response.ok:
            return None
        return response.text

    async def fetch_response(self, url: str) -> FetchResponse | None:
        """Full response for status inspection; ``None`` on network failure."""
        return await self.request(url)

    async def probe(self, url: str) -> bool:
        """HEAD request reachability check."""
        response = await self.request(url, method="HEAD")
        return response is not None and response.ok

    async def fetch_json(self, url: str) -> Any:
        """Parsed JSON document, :data:`NOT_FOUND` if missing, ``None`` if not JSON."""
        response = await self.request(url)
        if response is None or not response.ok:
            return NOT_FOUND
        try:
            return json.loads(response.text)
        except json.JSONDecodeError as exc:
            logger.warning("Invalid JSON from %s: %s", url, exc)
            return None

    async def fetch_scripts(self, urls: Iterable[str]) -> list[ContentSource]:
        """Fetch external scripts, keeping only those that returned content."""
        urls = list(urls)
        bodies = await asyncio.gather(*(self.fetch_text(u) for u in urls))
        return [
            ContentSource(source=url, code=body)
            for url, body in zip(urls, bodies)
            if body
        ]

    async def verify_npm_packages(self, names: Iterable[str]) -> list[str]:
        """Package names the public npm registry does not know (HTTP 404)."""
        names = list(names)
        responses = await asyncio.gather(
            *(self.fetch_response(NPM_REGISTRY_URL + quote(n, safe="")) for n in names)
        )
        return [
            name
            for name, response in zip(names, responses)
            if response is not None and response.status == 404
        ]
