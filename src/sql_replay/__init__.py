"""Restart-safe replay of SQL dumps against PostgreSQL."""

from .classifier import LineClassifier, LineOutcome, classify


def main() -> int:
    """Entrypoint proxy that defers importing the CLI until needed."""

    from .__main__ import main as _cli_main

    return _cli_main()


__all__ = ["main", "classify", "LineClassifier", "LineOutcome"]
