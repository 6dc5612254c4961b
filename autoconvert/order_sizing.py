"""Utility helpers for exchange-aware order sizing."""

from __future__ import annotations

import math
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Optional


def precision_from_step(step_size: Optional[float]) -> int:
    """Number of decimals implied by a LOT_SIZE ``stepSize``.

    ``0.001`` gives ``3`` and any step of ``1`` or more gives ``0``. A missing
    or non-positive step also yields ``0`` so callers always get a usable
    precision.
    """

    if step_size is None:
        return 0
    try:
        step = float(step_size)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(step) or step <= 0 or step >= 1:
        return 0
    return int(abs(round(math.log10(step))))


def format_quantity(value: float, precision: int) -> str:
    """Render ``value`` with exactly ``precision`` decimals, truncating extra digits.

    Truncation keeps a SELL quantity from exceeding the balance that was
    actually received.
    """

    precision = max(int(precision), 0)
    try:
        dec = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid order quantity {value!r}") from exc
    if not dec.is_finite():
        raise ValueError(f"Invalid order quantity {value!r}")
    quantum = Decimal(1).scaleb(-precision)
    return format(dec.quantize(quantum, rounding=ROUND_DOWN), "f")


def parse_amount(raw: object) -> float:
    """Parse an exchange decimal string; raises ``ValueError`` on junk."""

    if raw is None or isinstance(raw, bool):
        raise ValueError(f"Invalid amount {raw!r}")
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid amount {raw!r}") from exc
    if not math.isfinite(value):
        raise ValueError(f"Invalid amount {raw!r}")
    return value
