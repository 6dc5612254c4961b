"""Single-worker queue that turns trade jobs into market orders.

Each job is resolved against the exchange symbol cache:

* ``SOURCE/DEST`` exists: SELL ``amount`` of the source.
* ``DEST/SOURCE`` exists: BUY the destination spending ``amount`` of the source.
* neither exists: re-queue a first hop into the bridge asset that carries the
  original job as its continuation. When that hop settles, its executed
  proceeds are converted into the original destination.

Only one order is in flight at a time. Every failure is confined to the job
that caused it.
"""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests

from .exchange_info import ExchangeInfo, Orientation
from .jobs import BRIDGE_ASSET, SIDE_BUY, SIDE_SELL, OrderResult, TradeJob
from .notifier import NullNotifier
from .order_sizing import parse_amount


@dataclass(frozen=True)
class OrderPlan:
    symbol: str
    side: str
    amount: float
    precision: int


def parse_order_result(response: Mapping[str, Any]) -> OrderResult:
    """Build an :class:`OrderResult` from an order response.

    Raises ``ValueError`` when the executed quote quantity is missing, not a
    number or negative.
    """

    if not isinstance(response, Mapping):
        raise ValueError(f"Unexpected order response {response!r}")
    proceeds = parse_amount(response.get("cummulativeQuoteQty"))
    if proceeds < 0:
        raise ValueError(f"Negative cummulativeQuoteQty {proceeds}")
    executed_qty = None
    try:
        executed_qty = parse_amount(response.get("executedQty"))
    except ValueError:
        pass
    order_id = response.get("orderId")
    return OrderResult(
        symbol=str(response.get("symbol") or ""),
        side=str(response.get("side") or ""),
        quote_quantity=proceeds,
        executed_qty=executed_qty,
        order_id=order_id if isinstance(order_id, int) else None,
        raw=dict(response),
    )


class TradeDispatcher:
    def __init__(
        self,
        exchange: ExchangeInfo,
        client,
        *,
        notifier=None,
        bridge_asset: str = BRIDGE_ASSET,
        queue_size: int = 0,
        dry_run: bool = False,
    ):
        self.exchange = exchange
        self.client = client
        self.notifier = notifier or NullNotifier()
        self.bridge_asset = bridge_asset.upper()
        self.dry_run = dry_run
        self.jobs: "queue.Queue[Optional[TradeJob]]" = queue.Queue(maxsize=max(int(queue_size), 0))
        self._thread: Optional[threading.Thread] = None

    # producer side

    def submit(self, job: TradeJob, block: bool = True, timeout: Optional[float] = None) -> None:
        """Enqueue a job, blocking while the queue is full."""

        self.jobs.put(job, block=block, timeout=timeout)

    def _enqueue_followup(self, job: TradeJob) -> None:
        # Runs on the worker thread: never block on our own queue.
        try:
            self.jobs.put_nowait(job)
        except queue.Full:
            logging.debug("Job queue full; handing off follow-up %s", job.describe())
            threading.Thread(target=self.jobs.put, args=(job,), name="followup-enqueue", daemon=True).start()

    # worker side

    def start(self) -> "TradeDispatcher":
        if self._thread is None:
            self._thread = threading.Thread(target=self.run, name="trade-dispatcher", daemon=True)
            self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        if self._thread is None:
            return
        try:
            self.jobs.put(None, timeout=timeout)
        except queue.Full:
            logging.warning("Job queue still full after %ss; worker not stopped", timeout)
            return
        self._thread.join(timeout)
        self._thread = None

    def run(self) -> None:
        while True:
            job = self.jobs.get()
            try:
                if job is None:
                    return
                self.process(job)
            except Exception as exc:  # pylint: disable=broad-except
                logging.exception("Unexpected error processing %s: %s", job, exc)
            finally:
                self.jobs.task_done()

    def resolve(self, job: TradeJob) -> Optional[OrderPlan]:
        match = self.exchange.lookup(job.source, job.destination)
        if match is None:
            return None
        info, orientation = match
        side = SIDE_SELL if orientation is Orientation.DIRECT else SIDE_BUY
        return OrderPlan(symbol=info.symbol, side=side, amount=job.amount, precision=info.precision)

    def route_via_bridge(self, job: TradeJob) -> Optional[TradeJob]:
        """First hop for a job without a direct pair, or ``None`` if it cannot be bridged."""

        source, dest = job.source.upper(), job.destination.upper()
        if job.continuation is not None or self.bridge_asset in (source, dest):
            return None
        return TradeJob(source=source, destination=self.bridge_asset, amount=job.amount, continuation=job)

    def process(self, job: TradeJob) -> Optional[OrderResult]:
        """Handle one job; returns the settled order, if any."""

        if job.source.upper() == job.destination.upper():
            logging.warning("Dropping job %s: source and destination are the same", job.describe())
            return None
        if job.amount <= 0:
            logging.warning("Dropping job %s: non-positive amount", job.describe())
            return None

        plan = self.resolve(job)
        if plan is None:
            hop = self.route_via_bridge(job)
            if hop is None:
                self.notifier.notify(f"no route for {job.source} to {job.destination}, dropping {job.amount:g}")
                return None
            logging.info("direct symbol not found, trading via %s", self.bridge_asset.lower())
            self._enqueue_followup(hop)
            return None
        return self.settle(job, plan)

    @staticmethod
    def received_amount(plan: OrderPlan, result: OrderResult) -> Optional[float]:
        """Amount of the destination asset obtained by a settled order.

        A SELL yields the quote asset (``cummulativeQuoteQty``); a BUY yields the
        base asset (``executedQty``).
        """

        if plan.side == SIDE_BUY:
            if result.executed_qty is None or result.executed_qty < 0:
                return None
            return result.executed_qty
        return result.quote_quantity

    def settle(self, job: TradeJob, plan: OrderPlan) -> Optional[OrderResult]:
        if self.dry_run:
            logging.info("Dry-run: would submit MARKET %s %s amount %s (precision %s)",
                        plan.side, plan.symbol, plan.amount, plan.precision)
            return None
        try:
            response = self.client.submit_market_order(plan.symbol, plan.side, plan.amount, plan.precision)
        except (requests.RequestException, ValueError) as exc:
            logging.error("create order error for %s: %s", job.describe(), exc)
            self.notifier.notify(f"order failed {plan.symbol} {plan.side}: {exc}")
            return None

        try:
            result = parse_order_result(response)
        except ValueError as exc:
            logging.error("cummulativeQuoteQty parse error for %s %s: %s", plan.symbol, plan.side, exc)
            self.notifier.notify(f"order {plan.symbol} {plan.side} sent but proceeds unreadable; not continuing")
            return None

        self.notifier.notify(f"executed {result.symbol or plan.symbol} {result.side or plan.side} {result.quote_quantity:g}")
        if job.continuation is not None:
            received = self.received_amount(plan, result)
            if received is None:
                logging.error("executedQty missing for %s %s; dropping continuation to %s",
                              plan.symbol, plan.side, job.continuation.destination)
                self.notifier.notify(f"order {plan.symbol} {plan.side} filled but received amount unknown; not continuing")
                return None
            follow = TradeJob(
                source=self.bridge_asset,
                destination=job.continuation.destination,
                amount=received,
            )
            self.notifier.notify(f"crossjob: trading {follow.describe()}")
            self._enqueue_followup(follow)
        return result
