"""Wires settings, dump file, checkpoint log and database into one replay."""

from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Callable, Optional

from .checkpoint import CheckpointLog, recover_position
from .config import Settings
from .db import OperationalError, connect_from_settings
from .driver import ReplayDriver, ReplayResult
from .errors import (
    ConfigError,
    CorruptCheckpoint,
    DatabaseConnectionError,
    ReplayIOError,
)
from .executor import DryRunExecutor, StatementExecutor

logger = logging.getLogger(__name__)

PasswordPrompt = Callable[[], str]


@dataclass(frozen=True)
class ReplayStatus:
    position: int
    size: int

    @property
    def complete(self) -> bool:
        return self.position >= self.size

    @property
    def fraction(self) -> float:
        return self.position / self.size if self.size else 1.0


def _dump_size(settings: Settings) -> int:
    dump = settings.dump_path
    if dump is None:
        raise ConfigError("no dump file specified")
    try:
        return dump.stat().st_size
    except FileNotFoundError as exc:
        raise ConfigError(f"dump file {dump} does not exist") from exc
    except OSError as exc:
        raise ReplayIOError(f"unable to stat dump {dump}: {exc}") from exc


def _recover(settings: Settings, size: int) -> int:
    log_path = settings.checkpoint_log_path
    position = recover_position(log_path)
    if position > size:
        raise CorruptCheckpoint(
            f"checkpoint log {log_path} records position {position} "
            f"beyond the end of {settings.dump_path} ({size} bytes)"
        )
    return position


def replay_status(settings: Settings) -> ReplayStatus:
    """Report recovered progress without connecting to the database."""
    size = _dump_size(settings)
    return ReplayStatus(position=_recover(settings, size), size=size)


def replay_dump(
    settings: Settings,
    *,
    connect=connect_from_settings,
    password_prompt: Optional[PasswordPrompt] = None,
) -> ReplayResult:
    """Replay ``settings.dump_path`` from its last checkpoint to the end."""
    if settings.prompt_password and not settings.dry_run and password_prompt is None:
        raise ConfigError("password prompt requested but no prompt is available")
    size = _dump_size(settings)
    position = _recover(settings, size)
    if position:
        logger.info("resuming %s at byte %d of %d", settings.dump_path, position, size)

    with ExitStack() as stack:
        try:
            source = stack.enter_context(settings.dump_path.open("rb"))
        except OSError as exc:
            raise ReplayIOError(
                f"unable to open dump {settings.dump_path}: {exc}"
            ) from exc

        if settings.dry_run:
            checkpoint = None
            executor = DryRunExecutor(total_size=size)
        else:
            checkpoint = stack.enter_context(
                CheckpointLog(settings.checkpoint_log_path)
            )
            password = None
            if settings.prompt_password:
                password = password_prompt()
            try:
                connection = connect(settings, password)
            except OperationalError as exc:
                raise DatabaseConnectionError(
                    f"unable to connect to database: {exc}".strip()
                ) from exc
            stack.callback(connection.close)
            executor = StatementExecutor(
                connection,
                total_size=size,
                recoverable_sqlstates=settings.recoverable_sqlstates,
            )

        driver = ReplayDriver(
            source,
            executor,
            checkpoint,
            start_position=position,
            buffer_capacity=settings.buffer_capacity,
        )
        result = driver.run()

    logger.info(
        "replay of %s finished at byte %d: %d executed (%d duplicates ignored), "
        "%d skipped",
        settings.dump_path,
        result.position,
        result.executed,
        result.recovered,
        result.skipped,
    )
    return result


__all__ = ["ReplayStatus", "replay_dump", "replay_status"]
