import argparse
import asyncio
import logging
import sys

from holderscan.core.holder_aggregator import ConfigurationError, HolderAggregator, validate_tokens
from holderscan.core.live_config import CONFIG_PATH, load_config
from holderscan.inputs.onchain.helius_token_accounts import FatalFetchError, HeliusTokenAccountsClient
from holderscan.inputs.onchain.holder_fetcher import HolderFetcher
from holderscan.runtime.admission_queue import AdmissionQueue
from holderscan.special.holdings_report import write_intersection_report, write_threshold_report
from holderscan.utils.logger import log_error, log_event, setup_logging


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Find wallets holding several Solana tokens at once.")
    parser.add_argument("--config", default=CONFIG_PATH, help="Path to the JSON config file")
    parser.add_argument("--mode", choices=("threshold", "intersection"), help="Selection policy (overrides config)")
    parser.add_argument("--min-tokens", type=int, help="Minimum number of tokens held (threshold mode)")
    parser.add_argument("--output-dir", help="Directory for the generated reports")
    return parser.parse_args(argv)


async def run_scan(config: dict):
    tokens = config["tokens"]
    mode = config["mode"]
    min_tokens = config.get("min_tokens_required")
    if min_tokens is None:
        min_tokens = len(tokens)

    # validate before any network activity
    validate_tokens(tokens, min_tokens if mode == "threshold" else None)
    if not config["helius_api_key"]:
        raise ConfigurationError("helius_api_key is not set (config file or HELIUS_API_KEY)")

    async with AdmissionQueue(config["max_requests_per_second"]) as queue:
        async with HeliusTokenAccountsClient(
            config["helius_api_key"],
            rpc_url=config["helius_rpc_url"],
            timeout_s=config["request_timeout_s"],
        ) as client:
            fetcher = HolderFetcher(
                client,
                queue,
                page_limit=config["page_limit"],
                quota_cooldown_s=config["quota_cooldown_s"],
                max_quota_retries=config["max_quota_retries"],
            )
            aggregator = HolderAggregator(fetcher, token_pause_s=config["token_pause_s"])

            if mode == "intersection":
                result = await aggregator.find_common_holders(tokens)
                return write_intersection_report(result, config["output_dir"])

            result = await aggregator.find_holders_with_min_tokens(tokens, min_tokens)
            return write_threshold_report(result, config["output_dir"])


async def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except (ConfigurationError, OSError) as e:
        setup_logging()
        log_error(f"❌ Failed to load config: {e}")
        return 1

    if args.mode:
        config["mode"] = args.mode
    if args.min_tokens is not None:
        config["min_tokens_required"] = args.min_tokens
    if args.output_dir:
        config["output_dir"] = args.output_dir

    setup_logging(config["log_dir"], config["log_level"])
    logging.info(f"[Main] Loaded config from {args.config} ({len(config['tokens'])} tokens, mode={config['mode']})")

    try:
        text_path, json_path = await run_scan(config)
    except ConfigurationError as e:
        log_error(f"❌ Configuration error: {e}")
        return 1
    except FatalFetchError as e:
        log_error(f"❌ Fetch failed for {e.mint or 'unknown token'} (page {e.page}): {e}")
        return 1

    log_event("Reports generated successfully:")
    log_event(f"Text report: {text_path}")
    log_event(f"JSON report: {json_path}")
    return 0


def run():
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        log_event("🛑 Scan manually stopped.")
        sys.exit(130)


if __name__ == "__main__":
    run()
