"""Read-only snapshot of tradable symbols and their quantity precision."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .order_sizing import precision_from_step


class ExchangeInfoError(RuntimeError):
    """Raised when exchange metadata cannot be fetched at startup."""


class Orientation(enum.Enum):
    # source is the base asset, the order is a SELL of the source quantity
    DIRECT = "direct"
    # source is the quote asset, the order is a BUY spending the source amount
    REVERSE = "reverse"


@dataclass(frozen=True)
class SymbolInfo:
    symbol: str
    base_asset: str
    quote_asset: str
    step_size: Optional[float]
    precision: int
    status: str = "TRADING"


def _parse_step_size(symbol: str, filters: Any) -> Optional[float]:
    if not isinstance(filters, list):
        logging.warning("Symbol %s has no filter list; using precision 0", symbol)
        return None
    for f in filters:
        if not isinstance(f, dict) or f.get("filterType") != "LOT_SIZE":
            continue
        try:
            step = float(f["stepSize"])
        except (TypeError, ValueError, KeyError):
            logging.warning("Malformed LOT_SIZE filter for %s: %r; using precision 0", symbol, f)
            return None
        if step <= 0:
            logging.warning("Non-positive stepSize for %s: %r; using precision 0", symbol, f)
            return None
        return step
    return None


def parse_symbol(raw: Mapping[str, Any]) -> Optional[SymbolInfo]:
    """Build a :class:`SymbolInfo` from one ``exchangeInfo`` entry."""

    symbol = str(raw.get("symbol") or "").upper()
    if not symbol:
        logging.warning("Skipping exchange symbol without a name: %r", raw)
        return None
    step = _parse_step_size(symbol, raw.get("filters"))
    return SymbolInfo(
        symbol=symbol,
        base_asset=str(raw.get("baseAsset") or "").upper(),
        quote_asset=str(raw.get("quoteAsset") or "").upper(),
        step_size=step,
        precision=precision_from_step(step),
        status=str(raw.get("status") or "TRADING"),
    )


class ExchangeInfo:
    """Immutable symbol cache built once from ``/api/v3/exchangeInfo``."""

    def __init__(self, symbols: Iterable[SymbolInfo]):
        by_name: Dict[str, SymbolInfo] = {}
        by_assets: Dict[Tuple[str, str], SymbolInfo] = {}
        for info in symbols:
            by_name[info.symbol] = info
            if info.base_asset and info.quote_asset:
                by_assets[(info.base_asset, info.quote_asset)] = info
        self._by_name = MappingProxyType(by_name)
        self._by_assets = MappingProxyType(by_assets)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ExchangeInfo":
        raw_symbols = payload.get("symbols") if isinstance(payload, Mapping) else None
        if not isinstance(raw_symbols, list):
            raise ExchangeInfoError("exchangeInfo response has no symbol list")
        parsed = (parse_symbol(s) for s in raw_symbols if isinstance(s, Mapping))
        return cls(info for info in parsed if info is not None)

    @classmethod
    def load(cls, client) -> "ExchangeInfo":
        """Fetch the symbol list once; any failure is fatal for the caller."""

        try:
            payload = client.get_exchange_info()
        except Exception as exc:  # pylint: disable=broad-except
            raise ExchangeInfoError(f"error getting exchange info: {exc}") from exc
        info = cls.from_payload(payload)
        logging.info("Loaded %d exchange symbols", len(info))
        return info

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.upper() in self._by_name

    def get(self, symbol: str) -> Optional[SymbolInfo]:
        return self._by_name.get(symbol.upper())

    def _find(self, base: str, quote: str) -> Optional[SymbolInfo]:
        info = self._by_assets.get((base, quote))
        if info is not None:
            return info
        # entries without base/quote fields can only be matched by name
        info = self._by_name.get(base + quote)
        if info is not None and not (info.base_asset and info.quote_asset):
            return info
        return None

    def lookup(self, asset_a: str, asset_b: str) -> Optional[Tuple[SymbolInfo, Orientation]]:
        """Find the pair trading ``asset_a`` against ``asset_b`` in either direction."""

        a, b = asset_a.upper(), asset_b.upper()
        info = self._find(a, b)
        if info is not None:
            return info, Orientation.DIRECT
        info = self._find(b, a)
        if info is not None:
            return info, Orientation.REVERSE
        return None

    def precision_of(self, symbol: str) -> int:
        info = self.get(symbol)
        if info is None:
            raise KeyError(symbol)
        return info.precision
