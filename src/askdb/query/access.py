"""Access-mode enforcement.

Second gate after the guardrails: each connection declares an access mode and
each mode forbids a set of keywords. Only ``read`` is restricted by default;
deployments that want ``write``/``update`` to stay narrower pass their own
policies.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from askdb.core.types import AccessMode
from askdb.exceptions import OperationNotAllowedError

logger = logging.getLogger(__name__)

READ_FORBIDDEN_KEYWORDS = (
    "INSERT",
    "UPDATE",
    "DELETE",
    "DROP",
    "CREATE",
    "ALTER",
    "TRUNCATE",
)

DEFAULT_ACCESS_POLICIES: dict[AccessMode, tuple[str, ...]] = {
    AccessMode.READ: READ_FORBIDDEN_KEYWORDS,
    AccessMode.WRITE: (),
    AccessMode.UPDATE: (),
    AccessMode.FULL: (),
}


class AccessModeEnforcer:
    """Rejects SQL that the connection's access mode does not permit."""

    def __init__(self, policies: Mapping[AccessMode, Iterable[str]] | None = None) -> None:
        """Initialize the enforcer.

        Args:
            policies: Forbidden keywords per access mode; modes missing from the
                mapping fall back to the defaults
        """
        self._policies: dict[AccessMode, tuple[str, ...]] = dict(DEFAULT_ACCESS_POLICIES)
        for mode, keywords in (policies or {}).items():
            self._policies[AccessMode(mode)] = tuple(k.upper() for k in keywords)

    def forbidden_keywords(self, access_mode: AccessMode | str) -> tuple[str, ...]:
        """Keywords rejected under an access mode."""
        return self._policies[AccessMode(access_mode)]

    def enforce(self, sql: str, access_mode: AccessMode | str | None = None) -> None:
        """Check SQL against the access mode (``read`` when unspecified).

        Raises:
            OperationNotAllowedError: If the SQL contains a forbidden keyword
        """
        mode = AccessMode(access_mode) if access_mode else AccessMode.READ
        upper_sql = sql.upper()
        for keyword in self._policies[mode]:
            if keyword in upper_sql:
                logger.warning(f"Rejected {keyword} under '{mode}' access mode")
                raise OperationNotAllowedError(keyword, mode.value)
