"""Database utilities and psycopg2 helpers for dump replay."""

from __future__ import annotations

import ipaddress
import socket
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

import psycopg2
from psycopg2 import Error, OperationalError, ProgrammingError, errors
from psycopg2.extensions import parse_dsn

from sql_replay.errors import ConfigError

if TYPE_CHECKING:  # pragma: no cover - import-time helper only
    from sql_replay.config import Settings


Query = Union[str, bytes]


class Connection(psycopg2.extensions.connection):
    """psycopg2 connection running every statement as its own transaction."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.autocommit = True

    def execute(self, query: Query) -> int:
        """Run ``query`` without parameters and return the affected row count.

        Bytes are sent verbatim so dumps need not be valid UTF-8 text.
        """
        with self.cursor() as cursor:
            cursor.execute(query)
            return cursor.rowcount


def connect(*args, **kwargs) -> Connection:
    """Create a Connection instance using psycopg2."""

    kwargs.setdefault("connection_factory", Connection)
    return psycopg2.connect(*args, **kwargs)


def _server_options(settings: "Settings") -> Optional[str]:
    options = []
    if settings.db_schema:
        options.append(f"-c search_path={settings.db_schema},public")
    if settings.statement_timeout_ms:
        options.append(f"-c statement_timeout={settings.statement_timeout_ms}")
    return " ".join(options) or None


def _dial_address(settings: "Settings") -> str:
    """Numeric address of the server; libpq rejects names in ``hostaddr``."""

    host = settings.db_host
    if settings.dsn:
        try:
            parsed = parse_dsn(settings.dsn)
        except ProgrammingError as exc:
            raise ConfigError(f"invalid connection string: {exc}") from exc
        if parsed.get("hostaddr"):
            return parsed["hostaddr"]
        host = parsed.get("host") or host
    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        pass
    try:
        infos = socket.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    except OSError as exc:
        raise ConfigError(
            f"unable to resolve database host {host!r}: {exc}"
        ) from exc
    return infos[0][4][0]


def _tls_parameters(settings: "Settings") -> Dict[str, Any]:
    if not settings.tls_enabled:
        return {}
    params: Dict[str, Any] = {
        "sslmode": "verify-full" if settings.server_name else "verify-ca",
        "sslrootcert": str(settings.ssl_ca),
        "sslcert": str(settings.ssl_cert),
        "sslkey": str(settings.ssl_key),
    }
    if settings.server_name:
        # libpq checks the certificate against ``host`` and dials ``hostaddr``.
        params["hostaddr"] = _dial_address(settings)
        params["host"] = settings.server_name
    return params


def connection_parameters(
    settings: "Settings", password: Optional[str] = None
) -> Dict[str, Any]:
    """Build psycopg2 keyword arguments for the configured endpoint."""

    params: Dict[str, Any] = {}
    if not settings.dsn:
        params.update(
            host=settings.db_host,
            port=settings.db_port,
            dbname=settings.db_name,
            user=settings.db_user,
        )
        if settings.db_password:
            params["password"] = settings.db_password
    options = _server_options(settings)
    if options:
        params["options"] = options
    params.update(_tls_parameters(settings))
    if password is not None:
        params["password"] = password
    return params


def connect_from_settings(
    settings: "Settings", password: Optional[str] = None
) -> Connection:
    """Create a psycopg2 connection using the provided replay settings."""

    return connect(settings.dsn, **connection_parameters(settings, password))


__all__ = [
    "Connection",
    "Error",
    "OperationalError",
    "connect",
    "connect_from_settings",
    "connection_parameters",
    "errors",
]
