"""Core modules for the Binance auto-convert bot."""

__all__ = [
    "allocator",
    "balance_handler",
    "binance_client",
    "config",
    "dispatcher",
    "exchange_info",
    "jobs",
    "notifier",
    "order_sizing",
    "user_stream",
]
