from __future__ import annotations

import asyncio
import logging

import httpx

from keyshare.core.config import Settings
from keyshare.monitoring.setup import report_purge

logger = logging.getLogger(__name__)


class CachePurger:
    """Best-effort CDN cache invalidation for public URLs.

    Purging is advisory. Failures are logged and counted but never raised
    into the file operation that triggered them.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.enabled = settings.cdn_enabled
        self.endpoint = f"{settings.CF_API_BASE}/zones/{settings.CF_ID}/purge_cache"
        self._headers = {
            "X-Auth-Email": settings.CF_EMAIL or "",
            "X-Auth-Key": settings.CF_KEY or "",
            "Content-Type": "application/json",
        }
        self._timeout = settings.PURGE_TIMEOUT_SECONDS
        self._client = client
        self._owns_client = client is None
        self._pending: set[asyncio.Task] = set()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def purge(self, url: str) -> bool:
        if not self.enabled:
            return False
        try:
            response = await self._get_client().post(
                self.endpoint, json={"files": [url]}, headers=self._headers
            )
        except Exception as e:
            logger.warning("Cache purge for %s failed: %s", url, e)
            report_purge("error")
            return False
        if not response.is_success:
            logger.warning("Cache purge for %s returned %s: %s", url, response.status_code, response.text[:200])
            report_purge("rejected")
            return False
        logger.info("Purged %s from CDN cache", url)
        report_purge("ok")
        return True

    def schedule(self, url: str) -> asyncio.Task | None:
        """Start a purge without waiting for it."""
        if not self.enabled:
            return None
        task = asyncio.create_task(self.purge(url))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
