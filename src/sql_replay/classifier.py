"""Decides what to do with a candidate line of dump bytes."""

from __future__ import annotations

from enum import Enum
from typing import Tuple, Union


class LineOutcome(Enum):
    SKIP = "skip"
    EXECUTE = "execute"
    INCOMPLETE = "incomplete"


# MySQL-style single-line comments: "-- text", "#text", and a bare "--".
DEFAULT_COMMENT_PREFIXES: Tuple[bytes, ...] = (b"-- ", b"#")
DEFAULT_BARE_COMMENTS: Tuple[bytes, ...] = (b"--",)
DEFAULT_TERMINATOR = b";"


class LineClassifier:
    """Stateless classifier for comment lines and terminated statements.

    A candidate may span several physical lines; only its first bytes are
    checked for comment markers and only its last byte for the terminator.
    """

    def __init__(
        self,
        comment_prefixes: Tuple[bytes, ...] = DEFAULT_COMMENT_PREFIXES,
        bare_comments: Tuple[bytes, ...] = DEFAULT_BARE_COMMENTS,
        terminator: bytes = DEFAULT_TERMINATOR,
    ) -> None:
        if len(terminator) != 1:
            raise ValueError("statement terminator must be a single byte")
        self.comment_prefixes = tuple(comment_prefixes)
        self.bare_comments = frozenset(bare_comments)
        self.terminator = terminator

    def classify(self, line: bytes) -> LineOutcome:
        return self.classify_span(line, 0, len(line))

    def classify_span(
        self, data: Union[bytes, bytearray], start: int, end: int
    ) -> LineOutcome:
        """Classify ``data[start:end]`` without copying it."""
        if start >= end:
            return LineOutcome.SKIP
        if data.startswith(self.comment_prefixes, start, end):
            return LineOutcome.SKIP
        for marker in self.bare_comments:
            if end - start == len(marker) and data.startswith(marker, start, end):
                return LineOutcome.SKIP
        if data.endswith(self.terminator, start, end):
            return LineOutcome.EXECUTE
        return LineOutcome.INCOMPLETE

    def statement_text(self, line: bytes) -> bytes:
        """Return the statement with its trailing terminator removed."""
        if line.endswith(self.terminator):
            return line[:-1]
        return line


_DEFAULT = LineClassifier()


def classify(line: bytes) -> LineOutcome:
    return _DEFAULT.classify(line)


__all__ = ["LineClassifier", "LineOutcome", "classify"]
