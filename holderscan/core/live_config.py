import json
import logging
import os
from typing import Any, Dict, List

from holderscan.core.holder_aggregator import ConfigurationError, TokenSpec

CONFIG_PATH = "config.json"
API_KEY_ENV = "HELIUS_API_KEY"

# === Default Configuration ===
DEFAULT_CONFIG = {
    # === Helius ===
    "helius_api_key": "",
    "helius_rpc_url": "https://mainnet.helius-rpc.com/",
    "request_timeout_s": 15,

    # === Throttling ===
    "max_requests_per_second": 8,  # below the plan's 10/s
    "page_limit": 1000,
    "quota_cooldown_s": 1.0,
    "max_quota_retries": None,  # None == retry 429s forever
    "token_pause_s": 0.1,

    # === Selection ===
    "mode": "threshold",  # threshold | intersection
    "min_tokens_required": None,  # None == all tokens
    "tokens": [],  # [{"address": "<mint>", "price_usd": 0.0021}]

    # === Output / Logs ===
    "output_dir": "output",
    "log_dir": "logs",
    "log_level": "INFO",
}

MODES = ("threshold", "intersection")


def merge_with_defaults(user_config):
    for key, value in DEFAULT_CONFIG.items():
        if key not in user_config:
            user_config[key] = value
    return user_config


def parse_tokens(raw_tokens: Any) -> List[TokenSpec]:
    if not isinstance(raw_tokens, list):
        raise ConfigurationError("'tokens' must be a list")
    tokens = []
    for entry in raw_tokens:
        if isinstance(entry, str):
            tokens.append(TokenSpec(address=entry.strip()))
            continue
        if not isinstance(entry, dict) or not entry.get("address"):
            raise ConfigurationError(f"Invalid token entry: {entry!r}")
        price = entry.get("price_usd", entry.get("priceUsd"))
        try:
            price = float(price) if price is not None else None
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid price for token {entry['address']}: {price!r}")
        tokens.append(TokenSpec(address=str(entry["address"]).strip(), price_usd=price))
    return tokens


def load_config(path: str = CONFIG_PATH) -> Dict[str, Any]:
    if not os.path.exists(path):
        with open(path, "w") as f:
            json.dump(DEFAULT_CONFIG, f, indent=2)
        logging.warning(f"[Config] Created default config at {path}. Please update it.")

    with open(path, "r") as f:
        try:
            user_config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file {path} is not valid JSON: {e}")

    if not isinstance(user_config, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")

    config = merge_with_defaults(user_config)

    env_key = os.environ.get(API_KEY_ENV, "").strip()
    if env_key:
        config["helius_api_key"] = env_key
    config["helius_api_key"] = (config.get("helius_api_key") or "").strip()

    if config["mode"] not in MODES:
        raise ConfigurationError(f"Unknown mode {config['mode']!r}, expected one of {', '.join(MODES)}")

    config["tokens"] = parse_tokens(config["tokens"])
    return config
