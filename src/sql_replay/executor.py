"""Statement execution with duplicate-key tolerance and progress logging."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Tuple

from .db import Error, errors
from .errors import ConfigError, FatalExecutionError, RecoverableExecutionError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
_PREVIEW_LIMIT = 80


class StatementConnection(Protocol):
    def execute(self, query: bytes) -> int: ...


@dataclass(frozen=True)
class ExecutionOutcome:
    duration: float
    recovered: Optional[RecoverableExecutionError] = None


def preview(statement: bytes) -> str:
    """Shorten long statements to their head and tail for log lines."""
    text = statement.decode("utf-8", errors="replace")
    if len(text) > _PREVIEW_LIMIT:
        text = text[:60] + "[...]" + text[-10:]
    return text


class StatementExecutor:
    """Sends one statement at a time over an autocommit connection."""

    def __init__(
        self,
        connection: StatementConnection,
        *,
        total_size: int,
        recoverable_sqlstates: Iterable[str] = (UNIQUE_VIOLATION,),
    ) -> None:
        self.connection = connection
        self.total_size = total_size
        self.recoverable_sqlstates = frozenset(recoverable_sqlstates)
        self._recoverable_types = self._lookup_types(self.recoverable_sqlstates)

    @staticmethod
    def _lookup_types(codes: Iterable[str]) -> Tuple[type, ...]:
        found = []
        for code in sorted(codes):
            try:
                found.append(errors.lookup(code))
            except KeyError as exc:
                raise ConfigError(f"unknown SQLSTATE {code!r}") from exc
        return tuple(found)

    def _is_recoverable(self, exc: Error) -> bool:
        if getattr(exc, "pgcode", None) in self.recoverable_sqlstates:
            return True
        return isinstance(exc, self._recoverable_types)

    def _fraction(self, position: int) -> float:
        if self.total_size <= 0:
            return 1.0
        return position / self.total_size

    def execute(self, statement: bytes, *, position: int) -> ExecutionOutcome:
        started = time.monotonic()
        failure: Optional[Error] = None
        try:
            self.connection.execute(statement)
        except Error as exc:
            failure = exc
        duration = time.monotonic() - started

        text = preview(statement)
        logger.info(
            "%.2f %7dms %7d %r",
            self._fraction(position),
            int(duration * 1000),
            len(statement),
            text,
        )
        if failure is None:
            return ExecutionOutcome(duration=duration)

        sqlstate = getattr(failure, "pgcode", None)
        message = str(failure).strip() or type(failure).__name__
        if self._is_recoverable(failure):
            logger.warning('ignoring "duplicate entry" error: %s', message)
            return ExecutionOutcome(
                duration=duration,
                recovered=RecoverableExecutionError(
                    message, position=position, sqlstate=sqlstate, statement=text
                ),
            )
        logger.error("statement ending at byte %d failed: %s", position, message)
        raise FatalExecutionError(
            f"statement ending at byte {position} failed: {message}",
            position=position,
            sqlstate=sqlstate,
            statement=text,
        ) from failure


class DryRunExecutor:
    """Logs the statements a replay would run without touching a database."""

    def __init__(self, *, total_size: int) -> None:
        self.total_size = total_size

    def execute(self, statement: bytes, *, position: int) -> ExecutionOutcome:
        fraction = position / self.total_size if self.total_size > 0 else 1.0
        logger.info(
            "DRY-RUN %.2f %7d %r", fraction, len(statement), preview(statement)
        )
        return ExecutionOutcome(duration=0.0)


__all__ = [
    "DryRunExecutor",
    "ExecutionOutcome",
    "StatementExecutor",
    "UNIQUE_VIOLATION",
    "preview",
]
