# core/holder_aggregator.py
# ------------------------------------------------------------------
# Runs HolderFetcher over an ordered token list and reduces the
# per-token holder sets to one cross-token view:
#   - intersection: addresses holding every token
#   - threshold:    addresses holding >= N tokens, ranked by USD value
# A fatal fetch on any token fails the whole run.
# ------------------------------------------------------------------

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from holderscan.inputs.onchain.holder_fetcher import HolderBalance

TOKEN_PAUSE_S = 0.1


class ConfigurationError(ValueError):
    pass


@dataclass(frozen=True)
class TokenSpec:
    address: str
    price_usd: Optional[float] = None


@dataclass
class HolderSummary:
    address: str
    token_count: int = 0
    holdings: Dict[str, HolderBalance] = field(default_factory=dict)
    total_value_usd: float = 0.0


@dataclass(frozen=True)
class IntersectionResult:
    tokens: List[TokenSpec]
    addresses: List[str]
    holdings: Dict[str, Dict[str, HolderBalance]]
    generated_at: datetime


@dataclass(frozen=True)
class ThresholdResult:
    tokens: List[TokenSpec]
    min_tokens: int
    holders: List[HolderSummary]
    generated_at: datetime


HolderSets = Dict[str, List[HolderBalance]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---- Pure reducers ---------------------------------------------------------

def intersect_holders(holder_sets: HolderSets, order: Sequence[str]) -> List[str]:
    """
    Addresses present in every holder set. Seeded from the first token's
    ranking, so the output keeps that token's balance order.
    """
    if not order:
        return []
    common = [h.address for h in holder_sets[order[0]]]
    for mint in order[1:]:
        present = {h.address for h in holder_sets[mint]}
        common = [a for a in common if a in present]
    return common


def summarize_holders(holder_sets: HolderSets, order: Sequence[str]) -> Dict[str, HolderSummary]:
    summaries: Dict[str, HolderSummary] = {}
    for mint in order:
        add_to_summary(summaries, mint, holder_sets[mint])
    return summaries


def add_to_summary(summaries: Dict[str, HolderSummary], mint: str, holders: Iterable[HolderBalance]) -> None:
    for holder in holders:
        summary = summaries.get(holder.address)
        if summary is None:
            summary = summaries[holder.address] = HolderSummary(address=holder.address)
        if mint in summary.holdings:
            continue
        summary.token_count += 1
        summary.holdings[mint] = holder
        summary.total_value_usd += holder.value_usd or 0.0


def rank_holders(summaries: Dict[str, HolderSummary], min_tokens: int) -> List[HolderSummary]:
    qualified = [s for s in summaries.values() if s.token_count >= min_tokens]
    return sorted(qualified, key=lambda s: s.total_value_usd, reverse=True)


def validate_tokens(tokens: Sequence[TokenSpec], min_tokens: Optional[int] = None) -> None:
    if not tokens:
        raise ConfigurationError("At least one token is required")
    seen = set()
    for token in tokens:
        if not token.address:
            raise ConfigurationError("Token address cannot be empty")
        if token.address in seen:
            raise ConfigurationError(f"Token {token.address} is listed more than once")
        seen.add(token.address)
    if min_tokens is not None:
        if min_tokens < 1:
            raise ConfigurationError("Minimum tokens required must be at least 1")
        if min_tokens > len(tokens):
            raise ConfigurationError("Minimum tokens required cannot exceed total number of tokens")


# ---- Engine ----------------------------------------------------------------

class HolderAggregator:
    def __init__(
        self,
        fetcher: Any,
        *,
        token_pause_s: float = TOKEN_PAUSE_S,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.token_pause_s = token_pause_s
        self._sleep = sleep

    async def _each_token(self, tokens: Sequence[TokenSpec]):
        for idx, token in enumerate(tokens):
            if idx:
                await self._sleep(self.token_pause_s)
            holders = await self.fetcher.fetch_holders(token.address, token.price_usd)
            yield token, holders

    async def fetch_all(self, tokens: Sequence[TokenSpec]) -> HolderSets:
        """Sequentially fetch every token's holders. Any fatal error propagates."""
        validate_tokens(tokens)
        holder_sets: HolderSets = {}
        async for token, holders in self._each_token(tokens):
            holder_sets[token.address] = holders
        return holder_sets

    async def find_common_holders(self, tokens: Sequence[TokenSpec]) -> IntersectionResult:
        tokens = list(tokens)
        validate_tokens(tokens)
        logging.info(f"[HolderAggregator] Fetching holders for {len(tokens)} tokens (must hold all)...")

        holder_sets = await self.fetch_all(tokens)
        order = [t.address for t in tokens]
        addresses = intersect_holders(holder_sets, order)

        by_mint = {mint: {h.address: h for h in holder_sets[mint]} for mint in order}
        holdings = {a: {mint: by_mint[mint][a] for mint in order} for a in addresses}

        logging.info(f"[HolderAggregator] {len(addresses)} addresses hold all {len(tokens)} tokens")
        return IntersectionResult(tokens=tokens, addresses=addresses, holdings=holdings, generated_at=_now())

    async def find_holders_with_min_tokens(self, tokens: Sequence[TokenSpec], min_tokens: int) -> ThresholdResult:
        tokens = list(tokens)
        validate_tokens(tokens, min_tokens)
        logging.info(
            f"[HolderAggregator] Fetching holders for {len(tokens)} tokens (minimum {min_tokens} required)..."
        )

        summaries: Dict[str, HolderSummary] = {}
        async for token, holders in self._each_token(tokens):
            add_to_summary(summaries, token.address, holders)
            logging.info(
                f"[HolderAggregator] {token.address}: {len(holders)} holders, {len(summaries)} unique addresses so far"
            )

        ranked = rank_holders(summaries, min_tokens)
        logging.info(f"[HolderAggregator] {len(ranked)} addresses hold at least {min_tokens} tokens")
        return ThresholdResult(tokens=tokens, min_tokens=min_tokens, holders=ranked, generated_at=_now())
