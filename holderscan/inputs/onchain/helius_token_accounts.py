# inputs/onchain/helius_token_accounts.py

import asyncio
import itertools
import logging
from typing import Any, Dict, Optional

import aiohttp

from holderscan.utils.http_client import SafeSession, make_timeout

DEFAULT_RPC_URL = "https://mainnet.helius-rpc.com/"
RATE_LIMITED_STATUS = 429


class FatalFetchError(Exception):
    """Non-recoverable failure while paging token accounts."""

    def __init__(self, message: str, *, status: Optional[int] = None,
                 mint: Optional[str] = None, page: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.mint = mint
        self.page = page


class QuotaExhaustedError(FatalFetchError):
    """Raised only when a retry cap is configured and the same page kept hitting 429."""


class TransientQuotaError(Exception):
    """HTTP 429 from the indexer; the same page should be re-requested."""

    def __init__(self, mint: str, page: int):
        super().__init__(f"rate limited on page {page} for {mint}")
        self.mint = mint
        self.page = page


class HeliusTokenAccountsClient:
    """
    Thin wrapper around the Helius DAS `getTokenAccounts` method.
    One call == one page; paging and quota handling live in HolderFetcher.
    """

    def __init__(self, api_key: str, rpc_url: str = DEFAULT_RPC_URL,
                 timeout_s: float = 15, session: Optional[SafeSession] = None):
        if not api_key:
            raise ValueError("Helius API key is required")
        self.api_key = api_key
        self.rpc_url = rpc_url
        self._session = session or SafeSession(
            timeout=make_timeout(timeout_s),
            headers={"Content-Type": "application/json"},
        )
        self._ids = itertools.count(1)

    def _payload(self, mint: str, page: int, limit: int) -> Dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": f"holderscan-{next(self._ids)}",
            "method": "getTokenAccounts",
            "params": {
                "page": page,
                "limit": limit,
                "displayOptions": {},
                "mint": mint,
            },
        }

    async def get_token_accounts(self, mint: str, page: int, limit: int = 1000) -> Dict[str, Any]:
        payload = self._payload(mint, page, limit)
        try:
            async with self._session.request(
                "POST", self.rpc_url, params={"api-key": self.api_key}, json=payload
            ) as resp:
                if resp.status == RATE_LIMITED_STATUS:
                    raise TransientQuotaError(mint, page)
                if resp.status < 200 or resp.status >= 300:
                    raise FatalFetchError(
                        f"Error: {resp.status}, {resp.reason}",
                        status=resp.status, mint=mint, page=page,
                    )
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise FatalFetchError(
                        f"Invalid JSON body: {e}", status=resp.status, mint=mint, page=page
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logging.warning(f"[Helius] getTokenAccounts page {page} for {mint} failed: {e}")
            raise FatalFetchError(f"Request failed: {e}", mint=mint, page=page) from e

        if not isinstance(data, dict):
            raise FatalFetchError("Unexpected response shape", status=resp.status, mint=mint, page=page)
        return data

    async def close(self):
        await self._session.close()

    async def __aenter__(self) -> "HeliusTokenAccountsClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
