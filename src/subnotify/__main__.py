"""subnotify entry point.

Subcommands:
  serve       Start the REST API (queue reminders, register the device, run passes)
  reconcile   Run one reconciliation pass and print the result
  watch       Run a pass every --interval seconds until interrupted
  test        Schedule a test push one minute from now
"""

import argparse
import asyncio
import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

from subnotify.config import get_settings
from subnotify.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _version() -> str:
    try:
        return get_version("subnotify")
    except PackageNotFoundError:
        return "dev"


async def _run_once() -> int:
    from subnotify.queue import get_reconciliation_queue

    result = await get_reconciliation_queue().reconcile()
    print(f"Scheduled {result.sent}/{result.pending} reminder(s)")
    if result.error:
        print(f"Error: {result.error}")
        return 1
    return 0


async def _watch(interval: int) -> None:
    from subnotify.queue import get_reconciliation_queue

    queue = get_reconciliation_queue()
    logger.info("Reconciling every %ds (Ctrl+C to stop)", interval)
    while True:
        result = await queue.reconcile()
        if result.error:
            logger.warning("Pass finished with error: %s", result.error)
        await asyncio.sleep(interval)


async def _send_test() -> int:
    from subnotify.queue import get_reconciliation_queue

    result = await get_reconciliation_queue().send_test_notification()
    if result.success:
        print(f"Test notification scheduled (OneSignal id {result.remote_id})")
        return 0
    print(f"Error: {result.error}")
    return 1


def main() -> None:
    """Main entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="subnotify - subscription payment reminders via OneSignal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  subnotify serve                    Start the API on 127.0.0.1:8890
  subnotify reconcile                Hand due reminders to OneSignal once
  subnotify watch --interval 600     Reconcile every 10 minutes
  subnotify test                     Send a test push (arrives in ~1 minute)
""",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"%(prog)s {_version()}",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help=f"Logging level (default: {settings.log_level})",
    )

    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Start the REST API")
    serve.add_argument("--host", default=settings.api_host)
    serve.add_argument("--port", "-p", type=int, default=settings.api_port)
    serve.add_argument("--dev", action="store_true", help="Development mode with auto-reload")

    sub.add_parser("reconcile", help="Run one reconciliation pass")

    watch = sub.add_parser("watch", help="Run reconciliation passes periodically")
    watch.add_argument(
        "--interval",
        type=int,
        default=settings.reconcile_interval_seconds,
        help=f"Seconds between passes (default: {settings.reconcile_interval_seconds})",
    )

    sub.add_parser("test", help="Schedule a test push one minute ahead")

    args = parser.parse_args()
    setup_logging(level=args.log_level)

    if args.command == "serve":
        from subnotify.api.serve import run_api_server

        run_api_server(host=args.host, port=args.port, dev=args.dev)
    elif args.command == "reconcile":
        raise SystemExit(asyncio.run(_run_once()))
    elif args.command == "watch":
        try:
            asyncio.run(_watch(max(1, args.interval)))
        except KeyboardInterrupt:
            logger.info("Stopped")
    elif args.command == "test":
        raise SystemExit(asyncio.run(_send_test()))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
