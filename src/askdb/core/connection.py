"""Database connection management for AskDB.

Every operation against a target database gets its own short-lived engine:
created, used and disposed within the call, so credentials and sessions are
never shared between requests.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from askdb.core.types import ConnectionProfile, EngineKind
from askdb.exceptions import AskDBError, ConnectivityError, UnsupportedEngineError

logger = logging.getLogger(__name__)

T = TypeVar("T")

EngineFactory = Callable[..., AsyncEngine]
Operation = Callable[[AsyncConnection], Awaitable[T]]

DEFAULT_CONNECT_TIMEOUT = 10

# Driver messages that mean the server wants an encrypted connection
SSL_ERROR_MESSAGES = (
    "connection is insecure",
    "sslmode",
    "SSL connection",
    "server does not support SSL",
)

HOST_NOT_FOUND_MESSAGES = (
    "ENOTFOUND",
    "could not translate host name",
    "Name or service not known",
    "nodename nor servname provided",
)

AUTH_FAILED_MESSAGE = "password authentication failed"

_DATABASE_MISSING = re.compile(r'database "[^"]*" does not exist')


def build_url(profile: ConnectionProfile) -> URL:
    """Build the SQLAlchemy URL for a profile (psycopg 3 driver)."""
    if profile.engine is not EngineKind.POSTGRESQL:
        raise UnsupportedEngineError(profile.engine.value)
    return URL.create(
        "postgresql+psycopg",
        username=profile.username,
        password=profile.password.get_secret_value(),
        host=profile.host,
        port=profile.port,
        database=profile.database,
    )


def create_profile_engine(
    profile: ConnectionProfile,
    *,
    ssl: bool,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
    read_only_session: bool = False,
) -> AsyncEngine:
    """Create a single-connection async engine for one operation.

    Args:
        profile: Target connection
        ssl: Require TLS (without certificate verification) or disable it
        connect_timeout: Seconds to wait for the TCP and auth handshake
        read_only_session: Start every transaction read-only at the server

    Returns:
        AsyncEngine that must be disposed by the caller
    """
    connect_args: dict[str, Any] = {
        "sslmode": "require" if ssl else "disable",
        "connect_timeout": connect_timeout,
    }
    if read_only_session:
        connect_args["options"] = "-c default_transaction_read_only=on"

    return create_async_engine(
        build_url(profile),
        pool_size=1,
        max_overflow=0,
        isolation_level="AUTOCOMMIT",
        connect_args=connect_args,
    )


def driver_message(error: BaseException) -> str:
    """Extract the driver's own message, without SQLAlchemy's SQL/params suffix."""
    if isinstance(error, DBAPIError) and error.orig is not None:
        return str(error.orig).strip()
    return str(error).strip()


def redact(message: str, profile: ConnectionProfile) -> str:
    """Remove the profile's password from a message."""
    secret = profile.password.get_secret_value()
    if secret:
        message = message.replace(secret, "****")
    return message


def is_ssl_error(error: BaseException) -> bool:
    """Check whether a failure suggests the server requires TLS."""
    message = driver_message(error)
    return any(fragment in message for fragment in SSL_ERROR_MESSAGES)


def translate_error(
    error: BaseException,
    profile: ConnectionProfile,
    label: str,
    error_cls: type[AskDBError] = ConnectivityError,
) -> AskDBError:
    """Turn a driver failure into an actionable, password-free error.

    Args:
        error: Exception raised by the driver
        profile: Connection the operation ran against
        label: Prefix for unrecognised failures, e.g. "Query execution failed"
        error_cls: Exception type for unrecognised failures

    Returns:
        The error to raise
    """
    if isinstance(error, AskDBError):
        return error

    message = redact(driver_message(error), profile)
    context = {"host": profile.host, "database": profile.database}

    if any(fragment in message for fragment in HOST_NOT_FOUND_MESSAGES):
        return ConnectivityError(
            f"Cannot reach database host: {profile.host}. Please check the hostname.",
            context,
        )
    if AUTH_FAILED_MESSAGE in message:
        return ConnectivityError(
            "Authentication failed. Please check your username and password.",
            context,
        )
    if _DATABASE_MISSING.search(message):
        return ConnectivityError(
            f'Database "{profile.database}" does not exist. Please check the database name.',
            context,
        )
    return error_cls(f"{label}: {message}", context)


class DatabaseConnection:
    """One engine against one target database, for one operation."""

    def __init__(
        self,
        profile: ConnectionProfile,
        ssl: bool | None = None,
        connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
        read_only_session: bool = False,
        engine_factory: EngineFactory | None = None,
    ) -> None:
        """Initialize the connection.

        Args:
            profile: Target connection
            ssl: Override the profile's TLS requirement
            connect_timeout: Seconds to wait for the handshake
            read_only_session: Ask the server to make transactions read-only
            engine_factory: Callable building the engine (tests inject fakes)
        """
        self._profile = profile
        self._ssl = profile.requires_tls if ssl is None else ssl
        self._connect_timeout = connect_timeout
        self._read_only_session = read_only_session
        self._engine_factory = engine_factory or create_profile_engine
        self._engine: AsyncEngine | None = None

    @property
    def ssl(self) -> bool:
        """Whether this connection negotiates TLS."""
        return self._ssl

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the engine."""
        if self._engine is None:
            self._engine = self._engine_factory(
                self._profile,
                ssl=self._ssl,
                connect_timeout=self._connect_timeout,
                read_only_session=self._read_only_session,
            )
        return self._engine

    async def run(self, operation: Operation[T]) -> T:
        """Run an operation on a fresh connection from the engine."""
        async with self.engine.connect() as conn:
            return await operation(conn)

    async def test_connection(self) -> bool:
        """Run ``SELECT 1``; driver errors propagate untranslated."""

        async def ping(conn: AsyncConnection) -> bool:
            await conn.execute(text("SELECT 1"))
            return True

        return await self.run(ping)

    async def close(self) -> None:
        """Dispose of the engine, ignoring errors raised while closing."""
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        try:
            await engine.dispose()
        except Exception as e:
            logger.debug(f"Ignoring error while closing engine for {self._profile.host}: {e}")

    async def __aenter__(self) -> DatabaseConnection:
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()


async def run_with_ssl_fallback(
    profile: ConnectionProfile,
    operation: Operation[T],
    *,
    label: str,
    error_cls: type[AskDBError] = ConnectivityError,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
    read_only_session: bool = False,
    engine_factory: EngineFactory | None = None,
) -> T:
    """Run an operation, retrying once with TLS if the server demands it.

    The first attempt uses the profile's TLS requirement. If it fails without
    TLS and the error suggests the server requires a secure connection, the
    operation is retried once with TLS forced on; a failure of the retry is
    surfaced as the retry's own error. The engine is disposed after every
    attempt.

    Raises:
        AskDBError: Translated failure (``error_cls`` for unrecognised errors)
    """
    if profile.engine is not EngineKind.POSTGRESQL:
        raise UnsupportedEngineError(profile.engine.value)

    options = {
        "connect_timeout": connect_timeout,
        "read_only_session": read_only_session,
        "engine_factory": engine_factory,
    }
    ssl = profile.requires_tls

    try:
        async with DatabaseConnection(profile, ssl=ssl, **options) as db:
            return await db.run(operation)
    except AskDBError:
        raise
    except Exception as first_error:
        if not is_ssl_error(first_error):
            logger.error(
                f"{label} for {profile.host}/{profile.database}: "
                f"{redact(driver_message(first_error), profile)}"
            )
            raise translate_error(first_error, profile, label, error_cls) from first_error
        if ssl:
            message = redact(driver_message(first_error), profile)
            raise ConnectivityError(
                f"{label} even with SSL enabled: {message}. "
                "Please check your connection settings (host, port, SSL mode).",
                {"host": profile.host, "database": profile.database, "ssl": True},
            ) from first_error
        logger.warning(
            f"{profile.host} rejected a plaintext connection, retrying with SSL: "
            f"{redact(driver_message(first_error), profile)}"
        )

    try:
        async with DatabaseConnection(profile, ssl=True, **options) as db:
            return await db.run(operation)
    except AskDBError:
        raise
    except Exception as retry_error:
        logger.error(
            f"{label} for {profile.host}/{profile.database} with SSL: "
            f"{redact(driver_message(retry_error), profile)}"
        )
        raise translate_error(retry_error, profile, label, error_cls) from retry_error
