# registries.py
"""
Centralized registry for chains and tokens used by the swap runner
"""

# Chain Registry - chains served by the 0x Swap API v2
CHAINS = {
    "scroll": {
        "chain_id": 534352,
        "name": "Scroll",
        "explorer": "https://scrollscan.com"
    },
    "ethereum": {
        "chain_id": 1,
        "name": "Ethereum",
        "explorer": "https://etherscan.io"
    },
    "base": {
        "chain_id": 8453,
        "name": "Base",
        "explorer": "https://basescan.org"
    },
    "arbitrum": {
        "chain_id": 42161,
        "name": "Arbitrum One",
        "explorer": "https://arbiscan.io"
    },
    "polygon": {
        "chain_id": 137,
        "name": "Polygon",
        "explorer": "https://polygonscan.com"
    }
}

# Token Registry with decimals, keyed by chain
TOKENS = {
    "scroll": {
        "WETH": {
            "address": "0x5300000000000000000000000000000000000004",
            "decimals": 18,
            "name": "Wrapped Ether"
        },
        "wstETH": {
            "address": "0xf610A9dfB7C89644979b4A0f27063E9e7d7Cda32",
            "decimals": 18,
            "name": "Wrapped liquid staked Ether 2.0"
        },
        "USDC": {
            "address": "0x06eFdBFf2a14a7c8E15944D1F4A48F9F95F663A4",
            "decimals": 6,
            "name": "USD Coin"
        }
    },
    "ethereum": {
        "WETH": {
            "address": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
            "decimals": 18,
            "name": "Wrapped Ether"
        },
        "wstETH": {
            "address": "0x7f39C581F595B53c5cb19bD0b3f8dA6c935E2Ca0",
            "decimals": 18,
            "name": "Wrapped liquid staked Ether 2.0"
        },
        "USDC": {
            "address": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eb48",
            "decimals": 6,
            "name": "USD Coin"
        }
    },
    "base": {
        "WETH": {
            "address": "0x4200000000000000000000000000000000000006",
            "decimals": 18,
            "name": "Wrapped Ether"
        },
        "wstETH": {
            "address": "0xc1CBa3fCea344f92D9239c08C0568f6F2F0ee452",
            "decimals": 18,
            "name": "Wrapped liquid staked Ether 2.0"
        },
        "USDC": {
            "address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            "decimals": 6,
            "name": "USD Coin"
        }
    },
    "arbitrum": {
        "WETH": {
            "address": "0x82aF49447D8a07e3bd95BDdB56f35241523fBab1",
            "decimals": 18,
            "name": "Wrapped Ether"
        },
        "wstETH": {
            "address": "0x5979D7b546E38E414F7E9822514be443A4800529",
            "decimals": 18,
            "name": "Wrapped liquid staked Ether 2.0"
        },
        "USDC": {
            "address": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
            "decimals": 6,
            "name": "USD Coin"
        }
    },
    "polygon": {
        "WETH": {
            "address": "0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619",
            "decimals": 18,
            "name": "Wrapped Ether"
        },
        "WPOL": {
            "address": "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270",
            "decimals": 18,
            "name": "Wrapped POL"
        },
        "USDC": {
            "address": "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
            "decimals": 6,
            "name": "USD Coin"
        }
    }
}


def get_chain(chain: str) -> dict:
    info = CHAINS.get(chain.lower())
    if info is None:
        raise KeyError(f"Unknown chain '{chain}'. Known chains: {', '.join(CHAINS)}")
    return info


def get_token_address(chain: str, symbol: str) -> str:
    """Resolve a registry symbol (case-insensitive) or pass a raw address through"""
    if symbol.startswith("0x") and len(symbol) == 42:
        return symbol
    for token_symbol, info in TOKENS.get(chain.lower(), {}).items():
        if token_symbol.lower() == symbol.lower():
            return info["address"]
    raise KeyError(f"Unknown token '{symbol}' on {chain}")


def get_token_by_address(chain: str, address: str) -> dict:
    address = address.lower()
    for symbol, info in TOKENS.get(chain.lower(), {}).items():
        if info["address"].lower() == address:
            return {**info, "symbol": symbol}
    return {}


def explorer_tx_url(chain: str, tx_hash: str) -> str:
    return f"{get_chain(chain)['explorer']}/tx/{tx_hash}"
