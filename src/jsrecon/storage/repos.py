"""Persisted scan results, keyed by ``scan-`` or ``passive-`` prefixed cache keys."""

from __future__ import annotations

import json
import logging
import time

import aiosqlite

from jsrecon.scanner.models import ScanResult

logger = logging.getLogger(__name__)

MAX_CACHE_SIZE_BYTES = 30 * 1024 * 1024

SCAN_PREFIX = "scan-"
PASSIVE_PREFIX = "passive-"


class ScanCacheRepo:
    """Cache records of the shape ``{results, contentMap, timestamp}``."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def set(
        self,
        key: str,
        result: ScanResult,
        max_size_bytes: int = MAX_CACHE_SIZE_BYTES,
    ) -> bool:
        """Store a result; returns False if it had to drop the content map."""
        record = result.to_cache_record()
        payload = json.dumps(record)
        complete = True

        if len(payload.encode("utf-8")) > max_size_bytes:
            logger.warning(
                "Scan result for %s exceeds %d bytes, caching without content",
                key,
                max_size_bytes,
            )
            record["contentMap"] = {}
            payload = json.dumps(record)
            complete = False

        await self._db.execute(
            "INSERT OR REPLACE INTO scan_cache "
            "(key, payload, size, findings, timestamp) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                key,
                payload,
                len(payload),
                result.total_findings(),
                result.timestamp,
            ),
        )
        await self._db.commit()
        return complete

    async def get(self, key: str, max_age: float | None = None) -> ScanResult | None:
        """Return the cached result, deleting it instead if older than ``max_age``."""
        cursor = await self._db.execute(
            "SELECT payload, timestamp FROM scan_cache WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        if not row:
            return None

        if max_age is not None and time.time() - row["timestamp"] > max_age:
            await self.delete(key)
            return None

        return ScanResult.from_cache_record(json.loads(row["payload"]))

    async def delete(self, key: str) -> None:
        await self._db.execute("DELETE FROM scan_cache WHERE key = ?", (key,))
        await self._db.commit()

    async def clear_stale(self, prefix: str = "", max_age: float = -1) -> int:
        """Remove entries under ``prefix`` older than ``max_age`` (-1: all of them)."""
        pattern = prefix.replace("%", r"\%").replace("_", r"\_") + "%"
        if max_age == -1:
            cursor = await self._db.execute(
                "DELETE FROM scan_cache WHERE key LIKE ? ESCAPE '\\'", (pattern,)
            )
        else:
            cursor = await self._db.execute(
                "DELETE FROM scan_cache WHERE key LIKE ? ESCAPE '\\' "
                "AND timestamp < ?",
                (pattern, time.time() - max_age),
            )
        await self._db.commit()
        removed = cursor.rowcount
        if removed:
            logger.info("Pruned %d cached scan(s) with prefix %r", removed, prefix)
        return removed

    async def list_all(self, limit: int = 50, offset: int = 0) -> list[dict]:
        cursor = await self._db.execute(
            "SELECT key, size, findings, timestamp FROM scan_cache "
            "ORDER BY timestamp DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        return [dict(row) async for row in cursor]
