"""
Cookie stores for TemporaryAI.

The codec talks to a browser cookie jar through the CookieStore contract:
enumerate-all, delete-one and insert-one, each awaited to completion. The
embedded browser's jar is an external collaborator; this module provides the
contract plus two concrete jars used by the CLI and the tests.

Stores:
    - MemoryCookieStore: Dict-backed jar for tests and short-lived sessions
    - SqliteCookieStore: Single-file SQLite jar for the command line

A store rejects a cookie the way a browser refuses to construct one: empty
name, empty domain, or a path that does not start with "/".
"""

import asyncio
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from temporaryai.errors import StorageConnectionError, StorageReadError, StorageWriteError
from temporaryai.schema import CookieRecord

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- One row per cookie identity
CREATE TABLE IF NOT EXISTS cookies (
    domain TEXT NOT NULL,
    path TEXT NOT NULL,
    name TEXT NOT NULL,
    value TEXT NOT NULL,
    is_secure INTEGER NOT NULL DEFAULT 0,
    is_http_only INTEGER NOT NULL DEFAULT 0,
    expires TEXT,
    PRIMARY KEY (domain, path, name)
);

CREATE INDEX IF NOT EXISTS idx_cookies_domain ON cookies(domain);
"""


def rejection_reason(cookie: CookieRecord) -> str | None:
    """Return why a store would refuse this cookie, or None if it is acceptable."""
    if not cookie.name:
        return "empty name"
    if not cookie.domain:
        return "empty domain"
    if not cookie.path.startswith("/"):
        return f"invalid path {cookie.path!r}"
    return None


class CookieStore(ABC):
    """
    Asynchronous cookie jar contract.

    Subclasses must implement:
    - get_all_cookies(): Every cookie currently held
    - delete_cookie(): Remove one cookie by identity (no-op if absent)
    - set_cookie(): Insert or replace one cookie; False if rejected

    Operations on distinct cookies may run concurrently.
    """

    @abstractmethod
    async def get_all_cookies(self) -> list[CookieRecord]:
        """Return every cookie in the jar."""

    @abstractmethod
    async def delete_cookie(self, cookie: CookieRecord) -> None:
        """Remove the cookie with the same (domain, path, name)."""

    @abstractmethod
    async def set_cookie(self, cookie: CookieRecord) -> bool:
        """Insert or replace a cookie. Returns False if the jar refuses it."""


class MemoryCookieStore(CookieStore):
    """Dict-backed cookie jar keyed by (domain, path, name)."""

    def __init__(self, cookies: list[CookieRecord] | None = None) -> None:
        self._cookies: dict[tuple[str, str, str], CookieRecord] = {}
        for cookie in cookies or []:
            self._cookies[cookie.identity] = cookie

    def __len__(self) -> int:
        return len(self._cookies)

    async def get_all_cookies(self) -> list[CookieRecord]:
        return list(self._cookies.values())

    async def delete_cookie(self, cookie: CookieRecord) -> None:
        self._cookies.pop(cookie.identity, None)

    async def set_cookie(self, cookie: CookieRecord) -> bool:
        reason = rejection_reason(cookie)
        if reason is not None:
            logger.warning("Rejected cookie %r for %r: %s", cookie.name, cookie.domain, reason)
            return False
        self._cookies[cookie.identity] = cookie
        return True


class SqliteCookieStore(CookieStore):
    """
    SQLite-backed cookie jar.

    Blocking database calls run in worker threads via asyncio.to_thread, so
    the event loop stays responsive while many inserts are in flight. A lock
    serializes access to the shared connection.

    Usage:
        with SqliteCookieStore("cookies.db") as store:
            count = asyncio.run(codec.import_cookies(store, text, password))
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Open (and if needed create) the cookie database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()
        self._connect()
        self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            self._conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            raise StorageConnectionError(
                db_path=str(self.db_path),
                operation="connect",
                message=f"Failed to connect to database: {e}",
            ) from e

    def _init_schema(self) -> None:
        """Initialize database schema if needed."""
        try:
            cursor = self._conn.executescript(CREATE_TABLES_SQL)
            cursor.close()

            cursor = self._conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            row = cursor.fetchone()
            if row is None:
                self._conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, datetime.now(UTC).isoformat()),
                )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="init_schema",
                underlying_error=str(e),
            ) from e

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SqliteCookieStore":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()

    # =========================================================================
    # CookieStore contract
    # =========================================================================

    async def get_all_cookies(self) -> list[CookieRecord]:
        return await asyncio.to_thread(self.list_cookies)

    async def delete_cookie(self, cookie: CookieRecord) -> None:
        await asyncio.to_thread(self.remove, cookie)

    async def set_cookie(self, cookie: CookieRecord) -> bool:
        reason = rejection_reason(cookie)
        if reason is not None:
            logger.warning("Rejected cookie %r for %r: %s", cookie.name, cookie.domain, reason)
            return False
        await asyncio.to_thread(self.upsert, cookie)
        return True

    # =========================================================================
    # Blocking operations
    # =========================================================================

    def list_cookies(self) -> list[CookieRecord]:
        """Read every cookie, ordered by domain, path and name."""
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT * FROM cookies ORDER BY domain, path, name"
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="list_cookies",
                underlying_error=str(e),
            ) from e

        return [
            CookieRecord(
                name=row["name"],
                value=row["value"],
                domain=row["domain"],
                path=row["path"],
                is_secure=bool(row["is_secure"]),
                is_http_only=bool(row["is_http_only"]),
                expires=datetime.fromisoformat(row["expires"]) if row["expires"] else None,
            )
            for row in rows
        ]

    def upsert(self, cookie: CookieRecord) -> None:
        """Insert a cookie, replacing any cookie with the same identity."""
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT OR REPLACE INTO cookies (
                        domain, path, name, value, is_secure, is_http_only, expires
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        cookie.domain,
                        cookie.path,
                        cookie.name,
                        cookie.value,
                        int(cookie.is_secure),
                        int(cookie.is_http_only),
                        cookie.expires.isoformat() if cookie.expires else None,
                    ),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="upsert",
                underlying_error=str(e),
            ) from e

    def remove(self, cookie: CookieRecord) -> None:
        """Delete the cookie with the same identity, if present."""
        try:
            with self._lock:
                self._conn.execute(
                    "DELETE FROM cookies WHERE domain = ? AND path = ? AND name = ?",
                    cookie.identity,
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="remove",
                underlying_error=str(e),
            ) from e
