"""Replay loop tying the stream buffer, classifier, executor and log together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Optional, Protocol

from .buffer import DEFAULT_CAPACITY, StreamBuffer
from .checkpoint import CheckpointLog
from .classifier import LineClassifier, LineOutcome
from .errors import EndOfStream, MalformedInput, ReplayIOError
from .executor import ExecutionOutcome

logger = logging.getLogger(__name__)


class ReplayState(Enum):
    SEEKING = "seeking"
    SCANNING = "scanning"
    CLASSIFYING = "classifying"
    COMMITTING = "committing"
    FILLING = "filling"
    DRAINING = "draining"
    DONE = "done"


class Executor(Protocol):
    def execute(self, statement: bytes, *, position: int) -> ExecutionOutcome: ...


@dataclass(frozen=True)
class ReplayResult:
    position: int
    executed: int
    skipped: int
    recovered: int
    growth_events: int


class ReplayDriver:
    """Sequentially replays a dump, checkpointing after every line it consumes.

    ``checkpoint`` may be None for dry runs, in which case progress is
    tracked in memory only.
    """

    def __init__(
        self,
        source: BinaryIO,
        executor: Executor,
        checkpoint: Optional[CheckpointLog],
        *,
        classifier: Optional[LineClassifier] = None,
        start_position: int = 0,
        buffer_capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        self.source = source
        self.executor = executor
        self.checkpoint = checkpoint
        self.classifier = classifier or LineClassifier()
        self.start_position = start_position
        self.position = start_position
        self.buffer = StreamBuffer(buffer_capacity, origin=start_position)
        self.state = ReplayState.SEEKING
        self.executed = 0
        self.skipped = 0
        self.recovered = 0

    def run(self) -> ReplayResult:
        try:
            return self._run()
        finally:
            self.state = ReplayState.DONE

    def _seek(self) -> None:
        self.state = ReplayState.SEEKING
        if not self.start_position:
            return
        logger.info("seeking to %d", self.start_position)
        try:
            self.source.seek(self.start_position)
        except OSError as exc:
            raise ReplayIOError(
                f"unable to seek dump to {self.start_position}: {exc}"
            ) from exc

    def _run(self) -> ReplayResult:
        self._seek()
        buffer = self.buffer
        exhausted = False
        while True:
            self.state = ReplayState.SCANNING
            boundary = buffer.next_boundary()
            if boundary is not None:
                self._handle_candidate(boundary)
                continue

            if exhausted:
                self.state = ReplayState.DRAINING
                if buffer.unconsumed:
                    raise MalformedInput(
                        f"dump ends with {buffer.unconsumed} bytes after the last "
                        f'"\\n" (starting at byte {self.position})'
                    )
                return self._result()

            self.state = ReplayState.FILLING
            buffer.reclaim()
            try:
                buffer.fill(self.source)
            except EndOfStream:
                exhausted = True

    def _handle_candidate(self, boundary: int) -> None:
        self.state = ReplayState.CLASSIFYING
        buffer = self.buffer
        outcome = self.classifier.classify_span(
            buffer.arena, buffer.consumed_start, boundary
        )
        if outcome is LineOutcome.INCOMPLETE:
            return

        end = buffer.position_after(boundary)
        if outcome is LineOutcome.EXECUTE:
            line = buffer.candidate(boundary)
            result = self.executor.execute(
                self.classifier.statement_text(line), position=end
            )
            self.executed += 1
            if result.recovered is not None:
                self.recovered += 1
        else:
            self.skipped += 1

        buffer.advance_consumed(boundary + 1)
        self.state = ReplayState.COMMITTING
        if self.checkpoint is not None:
            self.checkpoint.append(end)
        self.position = end

    def _result(self) -> ReplayResult:
        return ReplayResult(
            position=self.position,
            executed=self.executed,
            skipped=self.skipped,
            recovered=self.recovered,
            growth_events=self.buffer.growth_events,
        )


__all__ = ["ReplayDriver", "ReplayResult", "ReplayState"]
