"""Turn user-data ``balanceUpdate`` events into queued trade jobs."""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from .allocator import ConversionRules, allocate
from .jobs import BalanceChange, TradeJob
from .notifier import NullNotifier
from .order_sizing import parse_amount

BALANCE_UPDATE_EVENT = "balanceUpdate"


def parse_balance_update(payload: Mapping[str, Any]) -> Optional[BalanceChange]:
    """Extract a :class:`BalanceChange` from a raw stream message.

    Returns ``None`` for other event types and for unparsable deltas.
    """

    if payload.get("e") != BALANCE_UPDATE_EVENT:
        return None
    asset = str(payload.get("a") or "").upper()
    try:
        change = parse_amount(payload.get("d"))
    except ValueError as exc:
        logging.warning("balance update change parse error for %s: %s", asset or "?", exc)
        return None
    if not asset:
        logging.warning("balance update without asset: %r", payload)
        return None
    return BalanceChange(asset=asset, change=change)


class BalanceEventHandler:
    def __init__(self, rules: ConversionRules, dispatcher, *, notifier=None):
        self.rules = rules
        self.dispatcher = dispatcher
        self.notifier = notifier or NullNotifier()

    def handle_message(self, payload: Mapping[str, Any]) -> List[TradeJob]:
        event = parse_balance_update(payload)
        if event is None:
            logging.debug("Ignoring user data event %s", payload.get("e"))
            return []
        return self.on_balance_change(event)

    def on_balance_change(self, event: BalanceChange) -> List[TradeJob]:
        if event.change <= 0:
            logging.info("skipping not positive balance update %s %s", event.asset, event.change)
            return []
        if event.asset not in self.rules:
            logging.info("skipping not configured balance update %s %s", event.asset, event.change)
            return []

        self.notifier.notify(f"balance updated: {event.change:g} {event.asset}")
        jobs = allocate(event.asset, event.change, self.rules)
        for job, (_, percent) in zip(jobs, self.rules.get(event.asset)):
            self.notifier.notify(f"trading {percent:g}% of {event.asset} to {job.destination}")
            # Blocks while the dispatcher queue is full.
            self.dispatcher.submit(job)
        return jobs
