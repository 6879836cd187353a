#!/usr/bin/env python3
"""
Permit2 Swap Runner - Main Entry Point

Swaps one ERC-20 token for another through the 0x Swap API (Permit2 flow),
with optional affiliate fee and surplus collection.

Run:
  python main.py                      # 0.1 WETH -> wstETH on Scroll
  python main.py --amount 0.5 --dry-run
  python main.py --list-sources-only
"""

import argparse
import logging
import sys

from colorama import Fore, Style, init

import report
from registries import get_chain, get_token_address
from settings import ConfigError, describe, load_settings
from swap_runner import SwapRunner

init(autoreset=True)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_NOT_SUBMITTED = 2


def setup_logging(log_path: str, level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_path, encoding="utf-8")
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Swap ERC-20 tokens through the 0x Permit2 API")
    parser.add_argument("--chain", help="Chain name from the registry (default: scroll)")
    parser.add_argument("--sell-token", help="Sell token symbol or address")
    parser.add_argument("--buy-token", help="Buy token symbol or address")
    parser.add_argument("--amount", dest="sell_amount", help="Human readable sell amount, e.g. 0.1")
    parser.add_argument("--affiliate-fee-bps", type=int, help="Affiliate fee in basis points")
    parser.add_argument("--no-surplus", action="store_true", help="Disable surplus collection")
    parser.add_argument("--dry-run", action="store_true", help="Fetch price and quote only")
    parser.add_argument("--lenient-approval", action="store_true",
                        help="Log approval failures and continue instead of aborting")
    parser.add_argument("--list-sources-only", action="store_true",
                        help="List liquidity sources for the chain and exit")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings().with_overrides(
            chain=args.chain.lower() if args.chain else None,
            sell_token=args.sell_token,
            buy_token=args.buy_token,
            sell_amount=args.sell_amount,
            affiliate_fee_bps=args.affiliate_fee_bps,
            surplus_collection=False if args.no_surplus else None,
            dry_run=True if args.dry_run else None,
            strict_approval=False if args.lenient_approval else None,
        )
        get_chain(settings.chain)
        get_token_address(settings.chain, settings.sell_token)
        get_token_address(settings.chain, settings.buy_token)
    except (ConfigError, KeyError) as e:
        print(f"{Fore.RED}❌ Configuration error: {e}{Style.RESET_ALL}", file=sys.stderr)
        return EXIT_CONFIG

    setup_logging(settings.log_path, settings.log_level)

    report.print_header("🔁 PERMIT2 SWAP RUNNER")
    report.print_settings(describe(settings))

    with SwapRunner(settings) as runner:
        if args.list_sources_only:
            runner.list_sources()
            return EXIT_OK

        result = runner.run()

    logger.info(f"Run finished: submitted={result.submitted} tx={result.tx_hash}")
    if result.submitted or settings.dry_run:
        return EXIT_OK
    return EXIT_NOT_SUBMITTED


if __name__ == "__main__":
    sys.exit(main())
