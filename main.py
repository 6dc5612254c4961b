import argparse
import json
import logging
import sys

from autoconvert.balance_handler import BalanceEventHandler
from autoconvert.binance_client import BinanceClient
from autoconvert.config import load_config
from autoconvert.dispatcher import TradeDispatcher
from autoconvert.exchange_info import ExchangeInfo, ExchangeInfoError
from autoconvert.notifier import build_notifier
from autoconvert.user_stream import UserDataStream


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Convert incoming Binance deposits into target assets")
    ap.add_argument("-c", "--config", default="config.yaml", help="config filename")
    ap.add_argument("--debug", action="store_true", help="verbose logging")
    ap.add_argument("--dry-run", action="store_true", help="Log orders without sending them")
    return ap


def run(args) -> None:
    cfg = load_config(args.config)
    logging.info("Config: %s", json.dumps(cfg.redacted(), ensure_ascii=False))
    rules = cfg.conversion_rules()

    notifier = build_notifier(cfg.bot_token, cfg.bot_chat_id)
    notifier.notify("Bot started")

    try:
        client = BinanceClient(cfg.api_key, cfg.secret_key, base_url=cfg.base_url, order_timeout=cfg.order_timeout)
    except ValueError as exc:
        raise SystemExit(str(exc))

    try:
        exchange = ExchangeInfo.load(client)
    except ExchangeInfoError as exc:
        raise SystemExit(str(exc))

    dispatcher = TradeDispatcher(
        exchange,
        client,
        notifier=notifier,
        queue_size=cfg.queue_size,
        dry_run=args.dry_run,
    ).start()
    handler = BalanceEventHandler(rules, dispatcher, notifier=notifier)
    stream = UserDataStream(
        client,
        handler.handle_message,
        stream_url=cfg.stream_url,
        keepalive_seconds=cfg.keepalive_minutes * 60,
        retry_seconds=cfg.keepalive_retry_seconds,
    )
    try:
        stream.open()
    except Exception as exc:  # pylint: disable=broad-except
        raise SystemExit(f"Unable to start user data stream: {exc}")

    logging.info("Dry run mode: %s", "ON" if args.dry_run else "OFF")
    try:
        stream.run()
    except KeyboardInterrupt:
        logging.info("Interrupted, shutting down")
    finally:
        stream.stop()
        dispatcher.stop(timeout=5)
        notifier.close()


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        stream=sys.stdout,
    )
    run(args)


if __name__ == "__main__":
    main()
