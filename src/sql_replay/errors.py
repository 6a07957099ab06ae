"""Exception hierarchy shared by the replay components."""

from __future__ import annotations

from typing import Optional


class ReplayError(Exception):
    """Base exception for failures that must stop the replay."""


class ConfigError(ReplayError):
    """Raised when required configuration is missing or invalid."""


class ReplayIOError(ReplayError):
    """Raised when reading the dump or writing the checkpoint log fails."""


class CorruptCheckpoint(ReplayError):
    """Raised when a checkpoint log record cannot be decoded."""


class MalformedInput(ReplayError):
    """Raised when the dump ends with bytes that never formed a complete line."""


class DatabaseConnectionError(ReplayError):
    """Raised when the database server cannot be reached."""


class ExecutionError(ReplayError):
    """A statement failed on the server."""

    def __init__(
        self,
        message: str,
        *,
        position: int,
        sqlstate: Optional[str] = None,
        statement: str = "",
    ) -> None:
        super().__init__(message)
        self.position = position
        self.sqlstate = sqlstate
        self.statement = statement


class RecoverableExecutionError(ExecutionError):
    """Execution error that is safe to treat as a successful no-op."""


class FatalExecutionError(ExecutionError):
    """Execution error that aborts the replay before checkpointing."""


class EndOfStream(EOFError):
    """Signals that the dump source has no more bytes to read."""


__all__ = [
    "ConfigError",
    "CorruptCheckpoint",
    "DatabaseConnectionError",
    "EndOfStream",
    "ExecutionError",
    "FatalExecutionError",
    "MalformedInput",
    "RecoverableExecutionError",
    "ReplayError",
    "ReplayIOError",
]
