"""
Permit2 Swap Workflow
Strictly sequential - each step completes before the next one starts:

1. List liquidity sources for the chain
2. Indicative price (with affiliate fee / surplus collection)
3. Ensure the Permit2 allowance (approve + wait for 1 confirmation)
4. Firm quote with the same parameters
5. Report fill breakdown, token taxes, monetization
6. Sign the Permit2 EIP-712 message and splice it into the calldata
7. Sign and broadcast the swap transaction
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from colorama import Fore, Style, init

import report
from abis import MAX_UINT256
from chain_client import ChainClient
from price_math import format_units, parse_units, to_int
from registries import explorer_tx_url, get_chain, get_token_address, get_token_by_address
from settings import SwapSettings
from tx_builder import build_swap_transaction, splice_signature
from zerox_client import ZeroExClient

init(autoreset=True)

logger = logging.getLogger(__name__)


class SwapError(Exception):
    """Base class for errors that stop a swap before submission"""


class ApprovalError(SwapError):
    """The Permit2 allowance could not be granted"""


class SignatureError(SwapError):
    """A permit was required but no signed payload could be produced"""


@dataclass
class SwapResult:
    """Outcome of one run"""

    submitted: bool = False
    tx_hash: Optional[str] = None
    explorer_url: Optional[str] = None
    approval_tx_hash: Optional[str] = None
    quote: Optional[Dict[str, Any]] = None


class SwapRunner:
    """Runs a single Permit2 swap using explicitly supplied settings and clients"""

    def __init__(
        self,
        settings: SwapSettings,
        chain_client: Optional[ChainClient] = None,
        zerox: Optional[ZeroExClient] = None
    ):
        self.settings = settings
        self.chain = get_chain(settings.chain)
        self.chain_id = self.chain["chain_id"]
        self.chain_client = chain_client or ChainClient.from_settings(settings, self.chain_id)
        self.zerox = zerox or ZeroExClient(
            settings.zero_ex_api_key,
            base_url=settings.zero_ex_api_url,
            timeout=settings.http_timeout
        )

    def close(self):
        self.zerox.close()

    def __enter__(self) -> "SwapRunner":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def list_sources(self) -> list:
        sources = self.zerox.get_sources(self.chain_id)
        report.print_sources(self.chain["name"], sources)
        return sources

    def _token_label(self, token: str) -> str:
        if token.startswith("0x"):
            return get_token_by_address(self.settings.chain, token).get("symbol", token)
        return token

    def check_balance(self, token_address: str, amount: int, decimals: int):
        """Warn early when the wallet cannot cover the sell amount"""
        balance = self.chain_client.balance_of(token_address)
        if balance < amount:
            logger.warning(
                f"Balance {format_units(balance, decimals)} is below sell amount "
                f"{format_units(amount, decimals)} for {token_address}"
            )
        return balance

    def fetch_price(self, params: Dict[str, str]) -> Dict[str, Any]:
        sell_label = self._token_label(self.settings.sell_token)
        buy_label = self._token_label(self.settings.buy_token)

        price = self.zerox.get_price(params)
        print(f"\n{Fore.YELLOW}Retrieving price to exchange {self.settings.sell_amount} "
              f"{sell_label} for {buy_label}{Style.RESET_ALL}")
        print(f"Price API Call: {self.zerox.url_for(ZeroExClient.PRICE_PATH, params)}")
        logger.debug(f"Price response: {json.dumps(price, default=str)}")

        balance_issue = (price.get("issues") or {}).get("balance")
        if balance_issue:
            logger.warning(f"0x reports a balance issue: {balance_issue}")
        return price

    def ensure_allowance(self, price: Dict[str, Any], token_address: str) -> Optional[str]:
        """
        Grant Permit2 an unlimited allowance when the price response asks for one

        Returns the approval tx hash, or None when no approval was sent.
        With strict_approval the run is aborted on any approval failure,
        otherwise the failure is logged and the swap continues.
        """
        issue = (price.get("issues") or {}).get("allowance")
        if issue is None:
            print(f"{Fore.GREEN}✓ {self._token_label(self.settings.sell_token)} "
                  f"is already approved for Permit2{Style.RESET_ALL}")
            return None

        spender = issue.get("spender")
        try:
            if not spender:
                raise ApprovalError(f"Allowance issue without a spender: {issue}")

            print(f"{Fore.YELLOW}Granting approval for Permit2 ({spender}) to spend "
                  f"{self._token_label(self.settings.sell_token)}...{Style.RESET_ALL}")
            tx_hash = self.chain_client.approve(token_address, spender, MAX_UINT256)
            receipt = self.chain_client.wait_for_receipt(tx_hash)
            if receipt.get("status") != 1:
                raise ApprovalError(f"Approval transaction {tx_hash} reverted")

            required = to_int(price.get("sellAmount")) or 0
            granted = self.chain_client.allowance(token_address, spender)
            if granted < required:
                raise ApprovalError(f"Allowance still short after approval: {granted} < {required}")

            print(f"{Fore.GREEN}✓ Permit2 has been authorized: {tx_hash} "
                  f"(block {receipt.get('blockNumber')}){Style.RESET_ALL}")
            return tx_hash
        except Exception as e:
            logger.error(f"Error during Permit2 approval: {e}")
            if self.settings.strict_approval:
                if isinstance(e, ApprovalError):
                    raise
                raise ApprovalError(f"Permit2 approval failed: {e}") from e
            return None

    def fetch_quote(self, params: Dict[str, str]) -> Dict[str, Any]:
        quote = self.zerox.get_quote(params)
        print(f"\n{Fore.YELLOW}Retrieving quote to swap {self.settings.sell_amount} "
              f"{self._token_label(self.settings.sell_token)} for "
              f"{self._token_label(self.settings.buy_token)}{Style.RESET_ALL}")
        logger.debug(f"Quote response: {json.dumps(quote, default=str)}")
        return quote

    def sign_permit(self, quote: Dict[str, Any]) -> Optional[bytes]:
        """Sign quote.permit2.eip712; signing errors are logged and yield None"""
        eip712 = (quote.get("permit2") or {}).get("eip712")
        if not eip712:
            return None
        try:
            signature = self.chain_client.sign_typed_data(eip712)
        except Exception as e:
            logger.error(f"Error signing the Permit2 message: {e}")
            return None
        print(f"{Fore.GREEN}✓ Permit2 message from quote response signed successfully{Style.RESET_ALL}")
        return signature

    @staticmethod
    def attach_signature(quote: Dict[str, Any], signature: Optional[bytes]) -> Dict[str, Any]:
        """
        Splice the signature into quote.transaction.data in place

        Raises:
            SignatureError: if the signature or the calldata is missing
        """
        transaction = quote.get("transaction") or {}
        if not signature or not transaction.get("data"):
            raise SignatureError("Could not obtain signature or transaction data")
        transaction["data"] = splice_signature(transaction["data"], signature)
        return quote

    def submit(self, quote: Dict[str, Any]) -> str:
        """Sign and broadcast the quote's transaction, return the tx hash"""
        nonce = self.chain_client.get_nonce()
        tx = build_swap_transaction(quote["transaction"], self.chain_id, nonce)
        raw_tx = self.chain_client.sign_transaction(tx)
        tx_hash = self.chain_client.send_raw_transaction(raw_tx)
        logger.info(f"Swap transaction sent: {tx_hash}")
        return tx_hash

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def build_params(self) -> Dict[str, str]:
        sell_address = get_token_address(self.settings.chain, self.settings.sell_token)
        buy_address = get_token_address(self.settings.chain, self.settings.buy_token)

        decimals = self.chain_client.decimals(sell_address)
        sell_amount = parse_units(self.settings.sell_amount, decimals)
        self.check_balance(sell_address, sell_amount, decimals)

        return ZeroExClient.build_swap_params(
            chain_id=self.chain_id,
            sell_token=sell_address,
            buy_token=buy_address,
            sell_amount=sell_amount,
            taker=self.chain_client.address,
            affiliate_fee_bps=self.settings.affiliate_fee_bps,
            surplus_collection=self.settings.surplus_collection
        )

    def run(self) -> SwapResult:
        self.list_sources()

        params = self.build_params()
        price = self.fetch_price(params)

        sell_meta = get_token_by_address(self.settings.chain, params["sellToken"])
        buy_meta = get_token_by_address(self.settings.chain, params["buyToken"])
        report.print_price_summary(
            price,
            self._token_label(self.settings.sell_token),
            self._token_label(self.settings.buy_token),
            sell_decimals=sell_meta.get("decimals", 18),
            buy_decimals=buy_meta.get("decimals")
        )

        if self.settings.dry_run:
            quote = self.fetch_quote(params)
            report.print_quote_details(quote)
            print(f"{Fore.CYAN}Dry run: skipping approval, signing and submission{Style.RESET_ALL}")
            return SwapResult(submitted=False, quote=quote)

        approval_tx_hash = self.ensure_allowance(price, params["sellToken"])

        quote = self.fetch_quote(params)
        report.print_quote_details(quote)

        signature = None
        if (quote.get("permit2") or {}).get("eip712"):
            signature = self.sign_permit(quote)
            self.attach_signature(quote, signature)

        transaction = quote.get("transaction") or {}
        if not (signature and transaction.get("data")):
            report.print_failure("Failed to acquire a signature; transaction not sent.")
            return SwapResult(submitted=False, approval_tx_hash=approval_tx_hash, quote=quote)

        tx_hash = self.submit(quote)
        explorer_url = explorer_tx_url(self.settings.chain, tx_hash)
        report.print_success(tx_hash, explorer_url)
        return SwapResult(
            submitted=True,
            tx_hash=tx_hash,
            explorer_url=explorer_url,
            approval_tx_hash=approval_tx_hash,
            quote=quote
        )
