"""CLI context: the target database and shared output preferences."""

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any, TypeVar

from askdb import AskDB
from askdb.config import get_settings
from askdb.core.resolver import InMemoryConnectionStore, parse_connection_string
from askdb.core.types import AccessMode, ConnectionRecord
from askdb.exceptions import InvalidConnectionStringError

T = TypeVar("T")

# Id of the single connection record the CLI registers
CLI_CONNECTION_ID = "cli"


def get_database_url(url: str | None) -> str | None:
    """Resolve database URL from CLI arg or settings.

    Priority:
    1. Explicit URL argument (or ASKDB_DATABASE_URL via the option's envvar)
    2. ``database_url`` from settings / .env
    """
    if url:
        return url
    return get_settings().database_url


def record_from_url(url: str, access_mode: AccessMode) -> ConnectionRecord:
    """Build the CLI's connection record from a connection string."""
    parsed = parse_connection_string(url)
    return ConnectionRecord(
        id=CLI_CONNECTION_ID,
        name=parsed.database,
        host=parsed.host,
        port=parsed.port,
        database=parsed.database,
        username=parsed.username,
        password=parsed.password,
        engine=parsed.engine,
        access_mode=access_mode,
    )


@dataclass
class CLIContext:
    """Shared context for CLI commands.

    Holds the target database URL and output preferences; the AskDB instance is
    created on first use so commands that never touch a database (``parse``,
    ``validate``) work without one.
    """

    database_url: str | None
    access_mode: AccessMode = AccessMode.READ
    json_output: bool = False
    verbose: bool = False
    _db: AskDB | None = field(default=None, init=False, repr=False)

    @property
    def connection_id(self) -> str:
        return CLI_CONNECTION_ID

    def get_db(self) -> AskDB:
        """Get or create the AskDB instance (lazy initialization).

        Raises:
            InvalidConnectionStringError: If no database URL was given
        """
        if self._db is None:
            if not self.database_url:
                raise InvalidConnectionStringError(
                    "No database URL given. Pass --database or set ASKDB_DATABASE_URL."
                )
            store = InMemoryConnectionStore([record_from_url(self.database_url, self.access_mode)])
            self._db = AskDB(store)
        return self._db

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run a coroutine to completion from a synchronous command."""
        return asyncio.run(coro)
