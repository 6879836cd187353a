"""
Swap Transaction Builder
- Permit2 signature splicing: data ++ uint256(len(sig)) ++ sig
- Reverse splice for verification
- Quote transaction -> signable transaction dict (int fields, nonce, chain id)
"""

import logging
from typing import Any, Dict, Tuple, Union

from web3 import Web3

from price_math import to_int

logger = logging.getLogger(__name__)

LENGTH_PREFIX_BYTES = 32  # signature length is encoded as a big-endian uint256

HexOrBytes = Union[str, bytes]


def _as_bytes(value: HexOrBytes) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return Web3.to_bytes(hexstr=value)


def encode_signature_length(signature: HexOrBytes) -> bytes:
    return len(_as_bytes(signature)).to_bytes(LENGTH_PREFIX_BYTES, "big")


def splice_signature(data: HexOrBytes, signature: HexOrBytes) -> str:
    """
    Append a Permit2 signature to swap calldata

    Returns the new calldata as 0x-prefixed hex:
        data ++ 32-byte big-endian len(signature) ++ signature
    """
    data_bytes = _as_bytes(data)
    sig_bytes = _as_bytes(signature)
    if not sig_bytes:
        raise ValueError("Cannot splice an empty signature")
    return Web3.to_hex(data_bytes + encode_signature_length(sig_bytes) + sig_bytes)


def extract_signature(data: HexOrBytes, signature_length: int = 65) -> Tuple[str, bytes]:
    """
    Split spliced calldata back into (original calldata, signature)

    Raises:
        ValueError: if the payload is too short or the declared length
            does not match signature_length
    """
    data_bytes = _as_bytes(data)
    suffix = LENGTH_PREFIX_BYTES + signature_length
    if signature_length <= 0 or len(data_bytes) < suffix:
        raise ValueError("Payload too short to contain a spliced signature")

    prefix = data_bytes[-suffix:-signature_length]
    declared = int.from_bytes(prefix, "big")
    if declared != signature_length:
        raise ValueError(f"Declared signature length {declared} != {signature_length}")

    return Web3.to_hex(data_bytes[:-suffix]), data_bytes[-signature_length:]


def build_swap_transaction(quote_tx: Dict[str, Any], chain_id: int, nonce: int) -> Dict[str, Any]:
    """
    Build a signable transaction from the quote's transaction object

    value / gas / gasPrice are parsed from decimal strings to int and left
    out entirely when the quote does not carry them.
    """
    if not quote_tx.get("to"):
        raise ValueError("Quote transaction has no 'to' address")
    if not quote_tx.get("data"):
        raise ValueError("Quote transaction has no calldata")

    tx = {
        "to": Web3.to_checksum_address(quote_tx["to"]),
        "data": quote_tx["data"],
        "chainId": chain_id,
        "nonce": nonce,
    }

    for field in ("value", "gas", "gasPrice"):
        parsed = to_int(quote_tx.get(field))
        if parsed is not None:
            tx[field] = parsed

    logger.debug(f"Built swap transaction: to={tx['to']} nonce={nonce} fields={sorted(tx)}")
    return tx
