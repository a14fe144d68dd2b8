import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

import aiohttp

_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=15, connect=5, sock_connect=5, sock_read=15)


def make_timeout(total: float) -> aiohttp.ClientTimeout:
    return aiohttp.ClientTimeout(total=total, connect=5, sock_connect=5, sock_read=total)


class SafeSession:
    """
    Reusable aiohttp session with:
      - lazy creation
      - global timeout & connector limits
      - concurrency-safe init
      - context-manager support

    Status handling is left to the caller; nothing here retries.
    """
    def __init__(
        self,
        *,
        timeout: aiohttp.ClientTimeout = _DEFAULT_TIMEOUT,
        max_connections: int = 10,
        headers: Optional[Mapping[str, str]] = None,
    ):
        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = timeout
        self._max_connections = max_connections
        self._headers = dict(headers or {})
        self._lock = asyncio.Lock()

    async def _ensure(self) -> aiohttp.ClientSession:
        if self._session and not self._session.closed:
            return self._session
        async with self._lock:
            if self._session and not self._session.closed:
                return self._session
            connector = aiohttp.TCPConnector(limit=self._max_connections, enable_cleanup_closed=True)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
                headers=self._headers,
            )
            logging.debug("[SafeSession] Created session")
            return self._session

    async def close(self):
        if self._session and not self._session.closed:
            try:
                await self._session.close()
                logging.debug("[SafeSession] Closed session successfully.")
            except Exception as e:
                logging.warning(f"[SafeSession] Failed to close session: {e}")
        self._session = None

    async def __aenter__(self) -> "SafeSession":
        await self._ensure()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @asynccontextmanager
    async def request(self, method: str, url: str, **kwargs: Any):
        """
        Usage:
            async with safe.request("POST", url, json=payload) as resp:
                data = await resp.json()
        """
        sess = await self._ensure()
        async with sess.request(method, url, **kwargs) as resp:
            yield resp
