"""Append-only checkpoint log recording how far into a dump replay has got."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import BinaryIO, Optional

from .errors import CorruptCheckpoint, ReplayIOError

logger = logging.getLogger(__name__)

CHECKPOINT_SUFFIX = ".log"


def checkpoint_path_for(dump_path: Path | str) -> Path:
    """Return the log path stored next to the dump, e.g. ``dump.sql.log``."""
    dump = Path(dump_path)
    return dump.with_name(dump.name + CHECKPOINT_SUFFIX)


def _decode_position(raw: bytes, path: Path, lineno: int) -> int:
    try:
        record = json.loads(raw)
    except ValueError as exc:
        raise CorruptCheckpoint(
            f"{path}:{lineno}: undecodable checkpoint record: {exc}"
        ) from exc
    position = record.get("position") if isinstance(record, dict) else None
    if isinstance(position, bool) or not isinstance(position, int) or position < 0:
        raise CorruptCheckpoint(
            f"{path}:{lineno}: checkpoint record has no valid position: {raw!r}"
        )
    return position


def recover_position(path: Path | str) -> int:
    """Return the last position recorded in the log, or 0 when there is none."""
    log_path = Path(path)
    try:
        handle = log_path.open("rb")
    except FileNotFoundError:
        return 0
    except OSError as exc:
        raise ReplayIOError(f"unable to open checkpoint log {log_path}: {exc}") from exc

    last = 0
    with handle:
        try:
            for lineno, raw in enumerate(handle, start=1):
                last = _decode_position(raw.rstrip(b"\n"), log_path, lineno)
        except OSError as exc:
            raise ReplayIOError(
                f"unable to read checkpoint log {log_path}: {exc}"
            ) from exc
    return last


class CheckpointLog:
    """Durable append-only writer; every record is fsynced before returning."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.last_position: Optional[int] = None
        created = not self.path.exists()
        try:
            self._handle: Optional[BinaryIO] = self.path.open("ab")
        except OSError as exc:
            raise ReplayIOError(
                f"unable to open checkpoint log {self.path}: {exc}"
            ) from exc
        if created:
            self._sync_directory()

    def append(self, position: int) -> None:
        if self._handle is None:
            raise ReplayIOError(f"checkpoint log {self.path} is closed")
        if self.last_position is not None and position < self.last_position:
            raise ValueError(
                f"checkpoint position {position} precedes {self.last_position}"
            )
        record = json.dumps({"position": position}).encode("ascii") + b"\n"
        try:
            self._handle.write(record)
            self._handle.flush()
            os.fsync(self._handle.fileno())
        except OSError as exc:
            logger.error(
                "failed to persist checkpoint %d to %s: %s", position, self.path, exc
            )
            raise ReplayIOError(
                f"unable to write checkpoint log {self.path}: {exc}"
            ) from exc
        self.last_position = position

    def close(self) -> None:
        if self._handle is not None:
            try:
                self._handle.close()
            finally:
                self._handle = None

    def __enter__(self) -> "CheckpointLog":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def _sync_directory(self) -> None:
        try:
            dir_fd = os.open(self.path.parent, os.O_RDONLY)
        except OSError:  # pragma: no cover - platform dependent
            return
        try:
            os.fsync(dir_fd)
        except OSError:  # pragma: no cover - platform dependent
            logger.debug("directory fsync unsupported for %s", self.path.parent)
        finally:
            os.close(dir_fd)


__all__ = ["CheckpointLog", "checkpoint_path_for", "recover_position"]
