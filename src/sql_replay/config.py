"""Runtime configuration helpers for the dump replay tool."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .buffer import DEFAULT_CAPACITY
from .checkpoint import checkpoint_path_for
from .errors import ConfigError


@dataclass(frozen=True)
class Settings:
    """Immutable container for replay configuration."""

    dump_path: Optional[Path]
    checkpoint_path: Optional[Path] = None
    dsn: str = ""
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "postgres"
    db_user: str = "postgres"
    db_password: str = ""
    db_schema: str = ""
    prompt_password: bool = False
    tls_enabled: bool = False
    ssl_ca: Path = Path("server-ca.pem")
    ssl_cert: Path = Path("client-cert.pem")
    ssl_key: Path = Path("client-key.pem")
    server_name: str = ""
    buffer_capacity: int = DEFAULT_CAPACITY
    statement_timeout_ms: int = 0
    recoverable_sqlstates: Tuple[str, ...] = ("23505",)
    dry_run: bool = False

    @property
    def checkpoint_log_path(self) -> Path:
        if self.checkpoint_path is not None:
            return self.checkpoint_path
        if self.dump_path is None:
            raise ConfigError("no dump file specified")
        return checkpoint_path_for(self.dump_path)


def _as_bool(value: Optional[str], default: bool) -> bool:
    """Convert environment strings to booleans."""
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", ""}


def _as_int(name: str, value: Optional[str], default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _as_path(value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    return Path(value)


def _split_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(entry.strip() for entry in value.split(",") if entry.strip())


def load_settings(overrides: Optional[Mapping[str, Any]] = None) -> Settings:
    """Load configuration from the environment (and `.env`).

    Non-None ``overrides`` (typically parsed command line flags) win over the
    environment. Raises ``ConfigError`` when no dump file is configured.
    """
    load_dotenv()
    recoverable = _split_csv(os.getenv("REPLAY_RECOVERABLE_SQLSTATES")) or ("23505",)

    settings = Settings(
        dump_path=_as_path(os.getenv("REPLAY_DUMP")),
        checkpoint_path=_as_path(os.getenv("REPLAY_CHECKPOINT_PATH")),
        dsn=os.getenv("REPLAY_DSN", ""),
        db_host=os.getenv("PGHOST", "localhost"),
        db_port=_as_int("PGPORT", os.getenv("PGPORT"), 5432),
        db_name=os.getenv("PGDATABASE", "postgres"),
        db_user=os.getenv("PGUSER", "postgres"),
        db_password=os.getenv("PGPASSWORD", ""),
        db_schema=os.getenv("PGSCHEMA", ""),
        prompt_password=_as_bool(os.getenv("REPLAY_PROMPT_PASSWORD"), False),
        tls_enabled=_as_bool(os.getenv("REPLAY_ENABLE_SSL"), False),
        ssl_ca=Path(os.getenv("PGSSLROOTCERT", "server-ca.pem")),
        ssl_cert=Path(os.getenv("PGSSLCERT", "client-cert.pem")),
        ssl_key=Path(os.getenv("PGSSLKEY", "client-key.pem")),
        server_name=os.getenv("REPLAY_SERVER_NAME", "").strip(),
        buffer_capacity=_as_int(
            "REPLAY_BUFFER_BYTES", os.getenv("REPLAY_BUFFER_BYTES"), DEFAULT_CAPACITY
        ),
        statement_timeout_ms=_as_int(
            "REPLAY_STATEMENT_TIMEOUT_MS", os.getenv("REPLAY_STATEMENT_TIMEOUT_MS"), 0
        ),
        recoverable_sqlstates=recoverable,
        dry_run=_as_bool(os.getenv("REPLAY_DRY_RUN"), False),
    )

    if overrides:
        explicit = {key: value for key, value in overrides.items() if value is not None}
        try:
            settings = replace(settings, **explicit)
        except TypeError as exc:
            raise ConfigError(f"unknown setting override: {exc}") from exc

    if settings.dump_path is None or not str(settings.dump_path):
        raise ConfigError("no dump file specified (use --dump or REPLAY_DUMP)")
    if settings.buffer_capacity < 2:
        raise ConfigError("buffer capacity must be at least 2 bytes")
    if settings.statement_timeout_ms < 0:
        raise ConfigError("statement timeout must not be negative")
    return settings


__all__ = ["Settings", "load_settings"]
