"""Value types passed between the balance handler and the dispatcher."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

BRIDGE_ASSET = "USDT"

SIDE_BUY = "BUY"
SIDE_SELL = "SELL"


@dataclass(frozen=True)
class TradeJob:
    source: str
    destination: str
    amount: float
    # Original job when this one is the first hop through the bridge asset.
    continuation: Optional["TradeJob"] = None

    def describe(self) -> str:
        text = f"{self.amount:g} {self.source} -> {self.destination}"
        if self.continuation is not None:
            text += f" (then -> {self.continuation.destination})"
        return text


@dataclass(frozen=True)
class BalanceChange:
    asset: str
    change: float


@dataclass(frozen=True)
class OrderResult:
    symbol: str
    side: str
    quote_quantity: float
    executed_qty: Optional[float] = None
    order_id: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
