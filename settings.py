"""
Swap Runner Configuration
- Required secrets: signing key, 0x API key, RPC transport URL
- Optional trade parameters with sensible defaults (Scroll, 0.1 WETH -> wstETH)
- Loaded once per run and passed explicitly into the workflow
"""

import os
from dataclasses import dataclass, replace
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv


class ConfigError(Exception):
    """Raised when a required setting is missing or invalid"""


# env var -> message raised when it is absent
REQUIRED_VARS = {
    "PRIVATE_KEY": "Private key is missing.",
    "ZERO_EX_API_KEY": "0x API key is missing.",
    "ALCHEMY_HTTP_TRANSPORT_URL": "Alchemy HTTP transport URL is missing.",
}

TRUTHY = ("1", "true", "yes", "y", "on")
FALSY = ("0", "false", "no", "n", "off")


@dataclass(frozen=True)
class SwapSettings:
    """Everything a single swap run needs"""

    # Secrets
    private_key: str
    zero_ex_api_key: str
    rpc_url: str

    # Trade parameters
    chain: str = "scroll"
    sell_token: str = "WETH"
    buy_token: str = "wstETH"
    sell_amount: str = "0.1"

    # Monetization
    affiliate_fee_bps: int = 100               # 1%
    surplus_collection: bool = True

    # Behaviour
    zero_ex_api_url: str = "https://api.0x.org"
    http_timeout: float = 30.0
    strict_approval: bool = True               # abort the run if approval fails
    dry_run: bool = False

    # Logging
    log_path: str = "swap.log"
    log_level: str = "INFO"

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks
        return (
            f"SwapSettings(chain={self.chain!r}, sell_token={self.sell_token!r}, "
            f"buy_token={self.buy_token!r}, sell_amount={self.sell_amount!r}, "
            f"affiliate_fee_bps={self.affiliate_fee_bps}, "
            f"surplus_collection={self.surplus_collection}, dry_run={self.dry_run})"
        )

    def with_overrides(self, **overrides) -> "SwapSettings":
        """Return a copy with every non-None override applied"""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _flag(name: str, value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    text = value.strip().lower()
    if text in TRUTHY:
        return True
    if text in FALSY:
        return False
    raise ConfigError(f"{name} must be one of {TRUTHY + FALSY}, got {value!r}.")


def normalize_private_key(key: str) -> str:
    key = key.strip()
    return key if key.startswith("0x") else f"0x{key}"


def load_settings(env: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> SwapSettings:
    """
    Build SwapSettings from the environment.

    Args:
        env: Mapping to read from (defaults to os.environ)
        dotenv: Load a .env file into os.environ first

    Raises:
        ConfigError: if any required secret is missing; raised before any
            client is created so no network call can happen
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    for var, message in REQUIRED_VARS.items():
        if not (env.get(var) or "").strip():
            raise ConfigError(message)

    try:
        affiliate_fee_bps = int(env.get("AFFILIATE_FEE_BPS", "100"))
        http_timeout = float(env.get("HTTP_TIMEOUT", "30"))
    except ValueError as e:
        raise ConfigError(f"Invalid numeric setting: {e}") from e

    if affiliate_fee_bps < 0:
        raise ConfigError("AFFILIATE_FEE_BPS must not be negative.")

    return SwapSettings(
        private_key=normalize_private_key(env["PRIVATE_KEY"]),
        zero_ex_api_key=env["ZERO_EX_API_KEY"].strip(),
        rpc_url=env["ALCHEMY_HTTP_TRANSPORT_URL"].strip(),
        chain=env.get("CHAIN", "scroll").lower(),
        sell_token=env.get("SELL_TOKEN", "WETH"),
        buy_token=env.get("BUY_TOKEN", "wstETH"),
        sell_amount=env.get("SELL_AMOUNT", "0.1"),
        affiliate_fee_bps=affiliate_fee_bps,
        surplus_collection=_flag("SURPLUS_COLLECTION", env.get("SURPLUS_COLLECTION"), True),
        zero_ex_api_url=env.get("ZERO_EX_API_URL", "https://api.0x.org").rstrip("/"),
        http_timeout=http_timeout,
        strict_approval=_flag("STRICT_APPROVAL", env.get("STRICT_APPROVAL"), True),
        dry_run=_flag("DRY_RUN", env.get("DRY_RUN"), False),
        log_path=env.get("SWAP_LOG", "swap.log"),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )


def describe(settings: SwapSettings) -> Dict[str, str]:
    """Non-secret settings summary for startup output"""
    return {
        "Chain": settings.chain,
        "Pair": f"{settings.sell_token} -> {settings.buy_token}",
        "Sell amount": settings.sell_amount,
        "Affiliate fee": f"{settings.affiliate_fee_bps} bps",
        "Surplus collection": str(settings.surplus_collection).lower(),
        "Strict approval": str(settings.strict_approval).lower(),
        "Dry run": str(settings.dry_run).lower(),
    }
