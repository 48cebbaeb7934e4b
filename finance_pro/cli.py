import argparse
import asyncio
import sys

import structlog

from . import __version__
from .audit import AuditLogger, configure_logging
from .config import ConfigurationError, get_settings, require_settings, validate_all_settings

EXIT_CONFIGURATION_ERROR = 2

logger = structlog.get_logger(__name__)


def _fail_configuration(error: ConfigurationError) -> int:
    print(f"Configuration error: {error}", file=sys.stderr)
    asyncio.run(AuditLogger().log_configuration_error(error.missing))
    return EXIT_CONFIGURATION_ERROR


def run_telegram() -> int:
    from .channels.telegram_bot import run_telegram_bot
    from .orchestrator import create_bot_components

    try:
        loaded = require_settings("gemini", "telegram", "app")
    except ConfigurationError as e:
        return _fail_configuration(e)

    app = loaded["app"]
    configure_logging(app.log_level)

    async def _run() -> None:
        flow = await create_bot_components(loaded["gemini"])
        await run_telegram_bot(
            loaded["telegram"].token,
            flow,
            max_concurrent=app.max_concurrent_turns,
        )

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        logger.info("telegram_bot_stopped")
    return 0


def run_check() -> int:
    results = validate_all_settings()
    for name in ("gemini", "telegram", "google_sheets", "app"):
        status = "ok" if results.get(name) else "missing"
        print(f"{name:<14} {status}")
        if not results.get(name):
            print(f"  {results.get(f'{name}_error', '')}")

    if results.get("app"):
        app = get_settings().app
        print("DATA_DIR =", app.data_dir)
        print("LOG_LEVEL =", app.log_level)
    return 0 if results.get("gemini") else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="finance-pro")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument(
        "command",
        nargs="?",
        default="check",
        choices=["telegram", "check"],
        help="telegram: run the Telegram bot; check: report configuration",
    )

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    if args.command == "telegram":
        return run_telegram()

    return run_check()


if __name__ == "__main__":
    raise SystemExit(main())
