# inputs/onchain/holder_fetcher.py
# ------------------------------------------------------------------
# Pages one mint's token accounts to exhaustion and folds them into
# a per-owner holder list. Every page goes through the AdmissionQueue.
# ------------------------------------------------------------------

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from holderscan.inputs.onchain.helius_token_accounts import (
    QuotaExhaustedError,
    TransientQuotaError,
)
from holderscan.runtime.admission_queue import AdmissionQueue

PAGE_LIMIT = 1000
QUOTA_COOLDOWN_S = 1.0


@dataclass
class HolderBalance:
    address: str
    amount: int
    value_usd: Optional[float] = None


def _value_of(amount: int, price_usd: Optional[float]) -> Optional[float]:
    if price_usd is None:
        return None
    return amount * price_usd


class HolderFetcher:
    """
    fetch_holders(mint, price_usd) -> holders sorted by raw balance (desc).

    `client` must expose `get_token_accounts(mint, page, limit)` returning the
    decoded JSON-RPC body and raising TransientQuotaError on 429.

    A 429 keeps the page number and re-issues the same page after the
    cooldown. By default there is no cap on that; `max_quota_retries` bounds
    consecutive 429s on one page and raises QuotaExhaustedError when spent.
    """

    def __init__(
        self,
        client: Any,
        admission_queue: AdmissionQueue,
        *,
        page_limit: int = PAGE_LIMIT,
        quota_cooldown_s: float = QUOTA_COOLDOWN_S,
        max_quota_retries: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.admission_queue = admission_queue
        self.page_limit = page_limit
        self.quota_cooldown_s = quota_cooldown_s
        self.max_quota_retries = max_quota_retries
        self._sleep = sleep
        self.pages_fetched = 0
        self.quota_retries = 0

    async def _request_page(self, mint: str, page: int) -> Dict[str, Any]:
        return await self.admission_queue.run(
            lambda: self.client.get_token_accounts(mint, page, self.page_limit)
        )

    async def fetch_holders(self, mint: str, price_usd: Optional[float] = None) -> List[HolderBalance]:
        holders: Dict[str, HolderBalance] = {}
        page = 1
        retries_on_page = 0

        while True:
            logging.info(f"[HolderFetcher] Fetching page {page} for token {mint}...")
            try:
                data = await self._request_page(mint, page)
            except TransientQuotaError:
                retries_on_page += 1
                self.quota_retries += 1
                if self.max_quota_retries is not None and retries_on_page > self.max_quota_retries:
                    raise QuotaExhaustedError(
                        f"Rate limited {retries_on_page} times in a row on page {page}",
                        status=429, mint=mint, page=page,
                    )
                logging.warning(f"[HolderFetcher] Rate limit reached on page {page} for {mint}, waiting before retry...")
                await self._sleep(self.quota_cooldown_s)
                continue

            retries_on_page = 0
            self.pages_fetched += 1

            data = data or {}
            if data.get("error"):
                logging.warning(
                    f"[HolderFetcher] RPC error on page {page} for {mint}, treating as end of data: {data['error']}"
                )

            result = data.get("result")
            accounts = (result or {}).get("token_accounts") or []
            if not accounts:
                logging.info(f"[HolderFetcher] Token {mint}: no more accounts after page {page - 1}")
                break

            for account in accounts:
                owner = account.get("owner")
                if not owner:
                    logging.debug(f"[HolderFetcher] Skipping account without owner: {account.get('address')}")
                    continue
                amount = int(account.get("amount") or 0)
                holder = holders.get(owner)
                if holder is None:
                    holder = holders[owner] = HolderBalance(address=owner, amount=0)
                holder.amount += amount
                holder.value_usd = _value_of(holder.amount, price_usd)

            page += 1

        ranked = sorted(
            (h for h in holders.values() if h.amount > 0),
            key=lambda h: h.amount,
            reverse=True,
        )
        logging.info(
            f"[HolderFetcher] Token {mint}: {len(ranked)} holders across {page - 1} pages "
            f"({self.pages_fetched} pages, {self.quota_retries} quota retries this run)"
        )
        return ranked
