# special/holdings_report.py

import logging
import os
from datetime import datetime
from typing import Dict, List, Tuple

from holderscan.core.holder_aggregator import IntersectionResult, ThresholdResult
from holderscan.inputs.onchain.holder_fetcher import HolderBalance
from holderscan.utils.file_utils import atomic_write_json, atomic_write_text

SEPARATOR = "-" * 80


def format_usd(value: float) -> str:
    if value >= 1_000_000:
        return f"${value / 1_000_000:,.1f}M"
    if value >= 1_000:
        return f"${value / 1_000:,.1f}K"
    return f"${value:,.2f}"


def _file_stamp(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%dT%H-%M-%S-%f")


def _holding_rows(tokens, holdings: Dict[str, HolderBalance]) -> List[dict]:
    rows = []
    for token in tokens:
        holding = holdings.get(token.address)
        rows.append({
            "tokenAddress": token.address,
            "amount": holding.amount if holding else 0,
            "valueUsd": (holding.value_usd or 0.0) if holding else 0.0,
        })
    return rows


def _holding_lines(rows: List[dict]) -> List[str]:
    return [
        f"Token {r['tokenAddress']}: {r['amount']:,} tokens (Value: {format_usd(r['valueUsd'])})"
        for r in rows
    ]


def _write_pair(output_dir: str, prefix: str, ts: datetime, text: str, payload: dict) -> Tuple[str, str]:
    os.makedirs(output_dir, exist_ok=True)
    stamp = _file_stamp(ts)
    text_path = os.path.join(output_dir, f"{prefix}-{stamp}.txt")
    json_path = os.path.join(output_dir, f"{prefix}-{stamp}.json")
    atomic_write_text(text_path, text)
    atomic_write_json(json_path, payload)
    logging.info(f"[HoldingsReport] Wrote {text_path} and {json_path}")
    return text_path, json_path


# === Threshold policy ===
def render_threshold_report(result: ThresholdResult) -> Tuple[str, dict]:
    ts = result.generated_at
    lines = [
        f"Token Holdings Report - {ts.strftime('%Y-%m-%d %H:%M:%S %Z')}",
        f"Found {len(result.holders)} addresses that hold at least {result.min_tokens} tokens",
        "Sorted by total portfolio value (highest to lowest):",
        "",
    ]
    payload = {
        "timestamp": ts.isoformat(),
        "summary": {
            "totalHolders": len(result.holders),
            "minTokensRequired": result.min_tokens,
        },
        "holders": [],
    }

    for rank, holder in enumerate(result.holders, start=1):
        rows = _holding_rows(result.tokens, holder.holdings)
        lines += [
            f"Rank #{rank}",
            f"Holder: {holder.address}",
            f"Number of tokens held: {holder.token_count}",
            f"Total portfolio value: {format_usd(holder.total_value_usd)}",
            "",
        ]
        lines += _holding_lines(rows)
        lines += [SEPARATOR, ""]
        payload["holders"].append({
            "rank": rank,
            "address": holder.address,
            "tokenCount": holder.token_count,
            "totalValueUsd": holder.total_value_usd,
            "holdings": rows,
        })

    return "\n".join(lines) + "\n", payload


def write_threshold_report(result: ThresholdResult, output_dir: str = "output") -> Tuple[str, str]:
    text, payload = render_threshold_report(result)
    return _write_pair(output_dir, "holdings-report", result.generated_at, text, payload)


# === Intersection policy ===
def render_intersection_report(result: IntersectionResult) -> Tuple[str, dict]:
    ts = result.generated_at
    lines = [
        f"Common Holders Report - {ts.strftime('%Y-%m-%d %H:%M:%S %Z')}",
        f"Found {len(result.addresses)} addresses that hold all {len(result.tokens)} tokens",
        "",
    ]
    payload = {
        "timestamp": ts.isoformat(),
        "summary": {
            "totalHolders": len(result.addresses),
            "tokens": [t.address for t in result.tokens],
        },
        "holders": [],
    }

    for address in result.addresses:
        rows = _holding_rows(result.tokens, result.holdings.get(address, {}))
        lines.append(f"Holder: {address}")
        lines += _holding_lines(rows)
        lines += [SEPARATOR, ""]
        payload["holders"].append({"address": address, "holdings": rows})

    return "\n".join(lines) + "\n", payload


def write_intersection_report(result: IntersectionResult, output_dir: str = "output") -> Tuple[str, str]:
    text, payload = render_intersection_report(result)
    return _write_pair(output_dir, "common-holders", result.generated_at, text, payload)
