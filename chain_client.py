"""
Chain Client
- One signing account bound to one chain and one RPC transport
- ERC-20 reads (decimals, symbol, balance, allowance)
- Approval transactions with confirmation wait
- EIP-712 typed data signing (Permit2)
- Raw transaction signing and broadcast
"""

import logging
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

from abis import ERC20_ABI, MAX_UINT256

logger = logging.getLogger(__name__)


def _coerce_value(types: Dict[str, list], type_name: str, value: Any) -> Any:
    if type_name.endswith("]"):
        inner = type_name[:type_name.rindex("[")]
        return [_coerce_value(types, inner, item) for item in value]
    if type_name in types and isinstance(value, dict):
        fields = {field["name"]: field["type"] for field in types[type_name]}
        return {key: _coerce_value(types, fields[key], item) if key in fields else item
                for key, item in value.items()}
    if type_name.startswith(("uint", "int")) and isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return value


def coerce_typed_data(typed_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert integer fields given as strings into ints

    The 0x API serialises uint256 values in permit messages as decimal strings.
    """
    types = typed_data.get("types", {})
    coerced = dict(typed_data)
    coerced["message"] = _coerce_value(types, typed_data["primaryType"], typed_data.get("message", {}))
    if "EIP712Domain" in types:
        coerced["domain"] = _coerce_value(types, "EIP712Domain", typed_data.get("domain", {}))
    return coerced


class ChainClient:
    """Wallet + public RPC access for a single account on a single chain"""

    RECEIPT_TIMEOUT = 120  # seconds to wait for one confirmation

    def __init__(self, w3: Web3, private_key: str, chain_id: int):
        self.w3 = w3
        self.account = Account.from_key(private_key)
        self.chain_id = chain_id
        self._contracts: Dict[str, Any] = {}

    @classmethod
    def from_settings(cls, settings, chain_id: int) -> "ChainClient":
        w3 = Web3(Web3.HTTPProvider(settings.rpc_url, request_kwargs={"timeout": settings.http_timeout}))
        return cls(w3, settings.private_key, chain_id)

    @property
    def address(self) -> str:
        return self.account.address

    def token(self, address: str):
        """ERC-20 contract handle (cached per address)"""
        address = Web3.to_checksum_address(address)
        if address not in self._contracts:
            self._contracts[address] = self.w3.eth.contract(address=address, abi=ERC20_ABI)
        return self._contracts[address]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def decimals(self, token_address: str) -> int:
        return self.token(token_address).functions.decimals().call()

    def balance_of(self, token_address: str, owner: Optional[str] = None) -> int:
        owner = Web3.to_checksum_address(owner or self.address)
        return self.token(token_address).functions.balanceOf(owner).call()

    def allowance(self, token_address: str, spender: str, owner: Optional[str] = None) -> int:
        owner = Web3.to_checksum_address(owner or self.address)
        spender = Web3.to_checksum_address(spender)
        return self.token(token_address).functions.allowance(owner, spender).call()

    def get_nonce(self) -> int:
        return self.w3.eth.get_transaction_count(self.address)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def approve(self, token_address: str, spender: str, amount: int = MAX_UINT256) -> str:
        """
        Submit an ERC-20 approve() and return the tx hash

        The call is simulated first so a reverting approval never costs gas.
        """
        spender = Web3.to_checksum_address(spender)
        function = self.token(token_address).functions.approve(spender, amount)
        function.call({"from": self.address})

        tx = function.build_transaction({
            "from": self.address,
            "chainId": self.chain_id,
            "nonce": self.get_nonce(),
        })
        raw_tx = self.sign_transaction(tx)
        return self.send_raw_transaction(raw_tx)

    def wait_for_receipt(self, tx_hash: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        return self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout or self.RECEIPT_TIMEOUT)

    def sign_typed_data(self, typed_data: Dict[str, Any]) -> bytes:
        """Sign a full EIP-712 message (types, domain, primaryType, message)"""
        signable = encode_typed_data(full_message=coerce_typed_data(typed_data))
        signed = Account.sign_message(signable, private_key=self.account.key)
        return bytes(signed.signature)

    def sign_transaction(self, tx: Dict[str, Any]) -> bytes:
        """Sign a transaction dict, filling gas / gasPrice when the caller omitted them"""
        tx = dict(tx)
        tx.setdefault("from", self.address)
        tx.setdefault("chainId", self.chain_id)

        if "gas" not in tx:
            tx["gas"] = self.w3.eth.estimate_gas(tx)
            logger.info(f"Gas estimate: {tx['gas']}")
        if "gasPrice" not in tx and "maxFeePerGas" not in tx:
            tx["gasPrice"] = self.w3.eth.gas_price

        # from is implied by the signing key
        tx.pop("from", None)
        signed = self.account.sign_transaction(tx)
        return bytes(signed.raw_transaction)

    def send_raw_transaction(self, raw_tx: bytes) -> str:
        tx_hash = self.w3.eth.send_raw_transaction(raw_tx)
        return Web3.to_hex(tx_hash)
