"""
Risk Check - CLI.

============================================================
USAGE
============================================================
python -m risk_check.cli 0x742d35cc6634c0532925a3b844bc454e4438f44e
python -m risk_check.cli @polkadot example.com --log-level DEBUG
python -m risk_check.cli https://examp1e.com/login --env-file .env.local

One entity prints a single {meta, data} envelope; several entities run a
batch check.
============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from typing import List, Optional

from risk_check.config import Settings
from risk_check.exceptions import InvalidInputError
from risk_check.logging_utils import setup_logging
from risk_check.schemas import error_envelope, error_status, success_envelope
from risk_check.service import create_default_service


logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="risk-check",
        description="Check addresses, domains, Twitter handles and emails for fraud risk",
    )
    parser.add_argument(
        "entities",
        nargs="+",
        help="Entities to check",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=None,
        help="Path to a .env file with API keys",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Logging level (default: RISK_CHECK_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        default=None,
        help="Log output format (default: RISK_CHECK_LOG_FORMAT or text)",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indentation of the printed envelope",
    )
    return parser


async def async_main(args: argparse.Namespace, settings: Settings) -> int:
    """Run the check(s) and print the envelope."""
    started_at = time.perf_counter()

    async with create_default_service(settings) as service:
        try:
            if len(args.entities) == 1:
                result = await service.check_entity(args.entities[0])
            else:
                result = await service.check_batch(args.entities)
        except InvalidInputError as e:
            envelope = error_envelope(e, started_at)
            print(json.dumps(envelope.to_dict(), indent=args.indent))
            return 1
        except Exception as e:
            logger.exception(f"Check failed: {e}")
            envelope = error_envelope(e, started_at)
            print(json.dumps(envelope.to_dict(), indent=args.indent))
            return 2 if error_status(e) >= 500 else 1

    envelope = success_envelope(result, started_at)
    print(json.dumps(envelope.to_dict(), indent=args.indent))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env(args.env_file)
    setup_logging(
        level=args.log_level or settings.log_level,
        log_format=args.log_format or settings.log_format,
        # Envelope goes to stdout
        stream=sys.stderr,
    )

    return asyncio.run(async_main(args, settings))


if __name__ == "__main__":
    sys.exit(main())
