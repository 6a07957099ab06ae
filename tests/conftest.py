"""Test session configuration.

This module auto-loads environment variables from the project `.env` file so
integration tests can read `DB_MODE` and `PG*` settings without requiring the
developer to export them manually in the shell.
"""

from __future__ import annotations

import pytest
from dotenv import load_dotenv


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    # Load once per test session; no error if .env is absent.
    load_dotenv()


@pytest.fixture()
def write_dump(tmp_path):
    """Write ``content`` to a dump file under ``tmp_path`` and return its path."""

    def _write(content: bytes, name: str = "dump.sql"):
        path = tmp_path / name
        path.write_bytes(content)
        return path

    return _write


# Note: Individual tests can use the `monkeypatch` fixture to override env vars.
