"""Command line interface for the dump replay tool."""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .config import load_settings
from .errors import ReplayError
from .runner import replay_dump, replay_status

logger = logging.getLogger(__name__)


def _add_dump_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--dump", type=Path, default=None, help="SQL dump file")
    parser.add_argument(
        "--checkpoint",
        type=Path,
        default=None,
        help="Checkpoint log (defaults to <dump>.log next to the dump)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Restart-safe SQL dump replay")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    replay_parser = subparsers.add_parser(
        "replay", help="Replay the dump from its last checkpoint"
    )
    _add_dump_arguments(replay_parser)
    replay_parser.add_argument(
        "--dsn", default=None, help="libpq connection string (overrides PG* vars)"
    )
    replay_parser.add_argument(
        "--prompt",
        action="store_true",
        default=None,
        help="Prompt for the password rather than reading it from the DSN",
    )
    replay_parser.add_argument(
        "--enable-ssl",
        action="store_true",
        default=None,
        help="Connect with TLS using a client certificate",
    )
    replay_parser.add_argument("--ssl-ca", type=Path, default=None, help="Server CA")
    replay_parser.add_argument(
        "--ssl-cert", type=Path, default=None, help="Client PEM certificate"
    )
    replay_parser.add_argument(
        "--ssl-key", type=Path, default=None, help="Client PEM key"
    )
    replay_parser.add_argument(
        "--server-name",
        default=None,
        help="Name the server certificate must match",
    )
    replay_parser.add_argument(
        "--buffer-bytes", type=int, default=None, help="Initial read buffer size"
    )
    replay_parser.add_argument(
        "--statement-timeout-ms",
        type=int,
        default=None,
        help="Abort statements running longer than this (0 disables)",
    )
    replay_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Log statements without executing or checkpointing them",
    )

    status_parser = subparsers.add_parser(
        "status", help="Show how far the dump has been replayed"
    )
    _add_dump_arguments(status_parser)
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "dump_path": args.dump,
        "checkpoint_path": args.checkpoint,
        "dsn": getattr(args, "dsn", None),
        "prompt_password": getattr(args, "prompt", None),
        "tls_enabled": getattr(args, "enable_ssl", None),
        "ssl_ca": getattr(args, "ssl_ca", None),
        "ssl_cert": getattr(args, "ssl_cert", None),
        "ssl_key": getattr(args, "ssl_key", None),
        "server_name": getattr(args, "server_name", None),
        "buffer_capacity": getattr(args, "buffer_bytes", None),
        "statement_timeout_ms": getattr(args, "statement_timeout_ms", None),
        "dry_run": getattr(args, "dry_run", None),
    }


def _prompt_password() -> str:
    return getpass.getpass("Enter password: ")


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        )

    try:
        settings = load_settings(_overrides(args))
        if args.command == "status":
            status = replay_status(settings)
            state = "complete" if status.complete else "in progress"
            print(
                f"{settings.dump_path}: {status.position}/{status.size} bytes "
                f"({status.fraction:.2%}) {state}"
            )
            return 0
        replay_dump(settings, password_prompt=_prompt_password)
    except ReplayError as exc:
        logger.critical("replay aborted: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("shutdown requested (KeyboardInterrupt)")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
