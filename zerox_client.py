"""
0x Swap API v2 Client
- Liquidity source listing per chain
- Permit2 indicative price and firm quote
- Every call is a single attempt: errors propagate to the caller
"""

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class ZeroExAPIError(Exception):
    """Non-success response, transport failure or unparseable body from the 0x API"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ZeroExClient:
    """Thin requests-based wrapper around the 0x Swap API"""

    DEFAULT_BASE_URL = "https://api.0x.org"
    API_VERSION = "v2"

    SOURCES_PATH = "/swap/v1/sources"
    PRICE_PATH = "/swap/permit2/price"
    QUOTE_PATH = "/swap/permit2/quote"

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "0x-api-key": api_key,
            "0x-version": self.API_VERSION,
        })

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "ZeroExClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def url_for(self, path: str, params: Optional[Dict[str, str]] = None) -> str:
        """Full request URL, used for display"""
        request = requests.Request("GET", f"{self.base_url}{path}", params=params).prepare()
        return request.url

    def _get(self, path: str, params: Dict[str, str]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug(f"GET {url} {params}")

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise ZeroExAPIError(f"0x API request failed: {e}") from e

        if not response.ok:
            message = response.text
            try:
                body = response.json()
                if isinstance(body, dict):
                    message = body.get("message") or body.get("name") or message
            except ValueError:
                pass
            raise ZeroExAPIError(f"0x API returned {response.status_code}: {message}", response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise ZeroExAPIError(f"0x API returned malformed JSON: {e}", response.status_code) from e
        if not isinstance(body, dict):
            raise ZeroExAPIError(
                f"0x API returned unexpected JSON ({type(body).__name__}), expected an object",
                response.status_code,
            )
        return body

    def get_sources(self, chain_id: int) -> List[str]:
        """Distinct liquidity source names for a chain, in API order"""
        data = self._get(self.SOURCES_PATH, {"chainId": str(chain_id)})
        raw = data.get("sources") or []
        names = list(raw.keys()) if isinstance(raw, dict) else list(raw)
        return list(dict.fromkeys(names))

    @staticmethod
    def build_swap_params(
        chain_id: int,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: str,
        affiliate_fee_bps: int,
        surplus_collection: bool
    ) -> Dict[str, str]:
        """Query parameters shared by the price and quote endpoints"""
        return {
            "chainId": str(chain_id),
            "sellToken": sell_token,
            "buyToken": buy_token,
            "sellAmount": str(int(sell_amount)),
            "taker": taker,
            "affiliateFee": str(int(affiliate_fee_bps)),
            "surplusCollection": "true" if surplus_collection else "false",
        }

    def get_price(self, params: Dict[str, str]) -> Dict[str, Any]:
        """Indicative (non-binding) Permit2 price"""
        return self._get(self.PRICE_PATH, params)

    def get_quote(self, params: Dict[str, str]) -> Dict[str, Any]:
        """Firm Permit2 quote - takes the exact parameters used for the price"""
        return self._get(self.QUOTE_PATH, dict(params))
