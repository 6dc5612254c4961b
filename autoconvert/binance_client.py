import time
import hmac
import hashlib
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from .jobs import SIDE_BUY, SIDE_SELL
from .order_sizing import format_quantity


class BinanceClient:
    """Minimal REST client for Binance spot market orders and user data streams."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = "https://api.binance.com",
        *,
        timeout: float = 30.0,
        order_timeout: float = 10.0,
    ):
        if not api_key or not api_secret:
            raise ValueError("API key and secret must be provided for live trading")
        self.api_key = api_key
        self.api_secret = api_secret.encode()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.order_timeout = order_timeout
        self._session = requests.Session()
        self._session.headers.update({"X-MBX-APIKEY": api_key})

    def _sign(self, params: Dict[str, Any]) -> Dict[str, Any]:
        payload = urlencode(params, doseq=True)
        signature = hmac.new(self.api_secret, payload.encode(), hashlib.sha256).hexdigest()
        params["signature"] = signature
        return params

    def _request(self, method: str, path: str, *, params: Optional[Dict[str, Any]] = None, signed: bool = False,
                 timeout: Optional[float] = None) -> Dict[str, Any]:
        params = params.copy() if params else {}
        if signed:
            params.setdefault("timestamp", int(time.time() * 1000))
            params = self._sign(params)
        url = f"{self.base_url}{path}"
        resp = self._session.request(method, url, params=params if method == "GET" else None,
                                     data=params if method != "GET" else None,
                                     timeout=timeout or self.timeout)
        if resp.status_code >= 400:
            logging.error("Binance error %s: %s", resp.status_code, resp.text)
        resp.raise_for_status()
        return resp.json()

    def get_exchange_info(self) -> Dict[str, Any]:
        return self._request("GET", "/api/v3/exchangeInfo")

    def market_sell(self, symbol: str, quantity: float, precision: int) -> Dict[str, Any]:
        qty = format_quantity(quantity, precision)
        if float(qty) <= 0:
            raise ValueError(f"Quantity {quantity} rounds to zero at precision {precision}")
        params = {
            "symbol": symbol.upper(),
            "side": SIDE_SELL,
            "type": "MARKET",
            "quantity": qty,
        }
        logging.info("Submitting MARKET SELL for %s with qty %s", symbol, qty)
        return self._request("POST", "/api/v3/order", params=params, signed=True, timeout=self.order_timeout)

    def market_buy_quote(self, symbol: str, quote_amount: float, precision: int) -> Dict[str, Any]:
        quote_qty = format_quantity(quote_amount, precision)
        if float(quote_qty) <= 0:
            raise ValueError(f"Quote amount {quote_amount} rounds to zero at precision {precision}")
        params = {
            "symbol": symbol.upper(),
            "side": SIDE_BUY,
            "type": "MARKET",
            "quoteOrderQty": quote_qty,
        }
        logging.info("Submitting MARKET BUY for %s with %s quote", symbol, quote_qty)
        return self._request("POST", "/api/v3/order", params=params, signed=True, timeout=self.order_timeout)

    def submit_market_order(self, symbol: str, side: str, amount: float, precision: int) -> Dict[str, Any]:
        """SELL spends ``amount`` of the base asset, BUY spends ``amount`` of the quote asset."""

        if side == SIDE_SELL:
            return self.market_sell(symbol, amount, precision)
        if side == SIDE_BUY:
            return self.market_buy_quote(symbol, amount, precision)
        raise ValueError(f"Unsupported order side {side!r}")

    def start_user_stream(self) -> str:
        data = self._request("POST", "/api/v3/userDataStream")
        listen_key = data.get("listenKey")
        if not listen_key:
            raise ValueError(f"No listenKey in response: {data!r}")
        return str(listen_key)

    def keepalive_user_stream(self, listen_key: str) -> Dict[str, Any]:
        return self._request("PUT", "/api/v3/userDataStream", params={"listenKey": listen_key})

    def close_user_stream(self, listen_key: str) -> Dict[str, Any]:
        logging.info("Closing user data stream")
        return self._request("DELETE", "/api/v3/userDataStream", params={"listenKey": listen_key})
