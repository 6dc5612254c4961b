import hashlib
import hmac
import sys
from pathlib import Path
from urllib.parse import urlencode

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from autoconvert.binance_client import BinanceClient


def test_sign_uses_request_encoding_order():
    client = BinanceClient("key", "secret")
    params = {
        "symbol": "ETHUSDT",
        "side": "SELL",
        "type": "MARKET",
        "quantity": "1.2340",
        "timestamp": 1700000000000,
    }

    signed = client._sign(params.copy())

    payload = urlencode(params, doseq=True)
    expected_signature = hmac.new(b"secret", payload.encode(), hashlib.sha256).hexdigest()
    assert signed["signature"] == expected_signature


def test_missing_credentials_rejected():
    with pytest.raises(ValueError):
        BinanceClient("", "secret")


def _capture(monkeypatch, client, response=None):
    calls = []

    def fake_request(method, path, *, params=None, signed=False, timeout=None):
        calls.append({"method": method, "path": path, "params": params, "signed": signed, "timeout": timeout})
        return response if response is not None else {}

    monkeypatch.setattr(client, "_request", fake_request)
    return calls


def test_market_sell_formats_quantity_to_precision(monkeypatch):
    client = BinanceClient("key", "secret", order_timeout=7)
    calls = _capture(monkeypatch, client, {"orderId": 1})

    client.market_sell("ethusdt", 1.23456, 4)

    assert calls == [{
        "method": "POST",
        "path": "/api/v3/order",
        "params": {"symbol": "ETHUSDT", "side": "SELL", "type": "MARKET", "quantity": "1.2345"},
        "signed": True,
        "timeout": 7,
    }]


def test_market_buy_uses_quote_order_qty(monkeypatch):
    client = BinanceClient("key", "secret")
    calls = _capture(monkeypatch, client)

    client.submit_market_order("XRPUSDT", "BUY", 100.0, 0)

    assert calls[0]["params"] == {"symbol": "XRPUSDT", "side": "BUY", "type": "MARKET", "quoteOrderQty": "100"}


def test_quantity_rounding_to_zero_is_rejected(monkeypatch):
    client = BinanceClient("key", "secret")
    calls = _capture(monkeypatch, client)

    with pytest.raises(ValueError):
        client.market_sell("ETHUSDT", 0.0004, 3)
    assert calls == []


def test_unknown_side_rejected():
    client = BinanceClient("key", "secret")
    with pytest.raises(ValueError):
        client.submit_market_order("ETHUSDT", "HOLD", 1.0, 2)


def test_user_stream_lifecycle(monkeypatch):
    client = BinanceClient("key", "secret")
    calls = _capture(monkeypatch, client, {"listenKey": "abc"})

    assert client.start_user_stream() == "abc"
    client.keepalive_user_stream("abc")
    client.close_user_stream("abc")

    assert [(c["method"], c["path"], c["params"]) for c in calls] == [
        ("POST", "/api/v3/userDataStream", None),
        ("PUT", "/api/v3/userDataStream", {"listenKey": "abc"}),
        ("DELETE", "/api/v3/userDataStream", {"listenKey": "abc"}),
    ]
    assert not any(c["signed"] for c in calls)


def test_start_user_stream_without_key_fails(monkeypatch):
    client = BinanceClient("key", "secret")
    _capture(monkeypatch, client, {"code": -1})
    with pytest.raises(ValueError):
        client.start_user_stream()
