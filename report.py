"""
Console Reporting
Presentation only - every function works on already-fetched API data
"""

from typing import Any, Dict, List, Optional

from colorama import Fore, Style, init

from price_math import bps_to_percent, fill_shares, format_units, is_positive, token_tax_rates

init(autoreset=True)


def print_header(title: str):
    print(f"\n{Fore.CYAN}{'='*80}")
    print(f"{title}")
    print(f"{'='*80}{Style.RESET_ALL}\n")


def print_settings(summary: Dict[str, str]):
    for key, value in summary.items():
        print(f"   {key:<20} {value}")


def print_sources(chain_name: str, sources: List[str]):
    print(f"{Fore.CYAN}Available liquidity sources on the {chain_name} chain:{Style.RESET_ALL}")
    print(", ".join(sources) if sources else "(none)")


def print_price_summary(price: Dict[str, Any], sell_symbol: str, buy_symbol: str,
                        sell_decimals: int = 18, buy_decimals: Optional[int] = None):
    if price.get("sellAmount"):
        print(f"   Sell: {format_units(int(price['sellAmount']), sell_decimals)} {sell_symbol}")
    if price.get("buyAmount"):
        if buy_decimals is None:
            print(f"   Buy:  {price['buyAmount']} {buy_symbol} (base units)")
        else:
            print(f"   Buy:  {format_units(int(price['buyAmount']), buy_decimals)} {buy_symbol}")
    gas = price.get("gas") or (price.get("transaction") or {}).get("gas")
    if gas:
        print(f"   Gas:  {gas}")


def print_fill_breakdown(route: Dict[str, Any]):
    """Per-source percentage of routed volume"""
    fills = route.get("fills") or []
    print(f"{Fore.CYAN}{len(fills)} Sources{Style.RESET_ALL}")
    for source, pct in fill_shares(fills):
        print(f"{source}: {pct}%")


def print_token_taxes(token_metadata: Dict[str, Any]):
    """Buy/sell tax rates for tokens that charge them"""
    for label, key in (("Buy Token", "buyToken"), ("Sell Token", "sellToken")):
        buy_tax, sell_tax = token_tax_rates(token_metadata.get(key))
        if is_positive(buy_tax) or is_positive(sell_tax):
            print(f"{Fore.YELLOW}{label} Buy Tax: {buy_tax}%{Style.RESET_ALL}")
            print(f"{Fore.YELLOW}{label} Sell Tax: {sell_tax}%{Style.RESET_ALL}")


def print_monetization(quote: Dict[str, Any]):
    """Affiliate fee and collected surplus, when present and nonzero"""
    if is_positive(quote.get("affiliateFeeBps")):
        print(f"Affiliate Fee: {bps_to_percent(quote['affiliateFeeBps'])}%")

    if is_positive(quote.get("tradeSurplus")):
        print(f"Trade Surplus Collected: {quote['tradeSurplus']}")


def print_quote_details(quote: Dict[str, Any]):
    if quote.get("route"):
        print_fill_breakdown(quote["route"])
    if quote.get("tokenMetadata"):
        print_token_taxes(quote["tokenMetadata"])
    print_monetization(quote)


def print_success(tx_hash: str, explorer_url: str):
    print(f"\n{Fore.GREEN}✅ Transaction hash generated: {tx_hash}{Style.RESET_ALL}")
    print(f"   View transaction details at {explorer_url}")


def print_failure(message: str):
    print(f"{Fore.RED}❌ {message}{Style.RESET_ALL}")
