"""
PostgreSQL client with connection pooling and explicit transactions.

Uses psycopg2 with ThreadedConnectionPool. Single statements run through
execute()/execute_returning() and commit immediately. Multi-statement work
(catalog writes, reconciliation) runs inside transaction(), which pins one
pooled connection, commits on clean exit and rolls back on any exception.

The acting user is passed in explicitly and set as app.current_user_id on the
connection for the lifetime of the transaction, so triggers and policies can
see it. Nothing is read from ambient state.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Sequence, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

from core.config import CatalogConfig

logger = logging.getLogger(__name__)

# Global JSONB registration flag
_jsonb_registered = False


def _convert_params(params: Tuple | Dict | None) -> Tuple | Dict | None:
    """Convert UUID objects to strings."""
    if params is None:
        return None

    def convert(value: Any) -> Any:
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, list):
            return [convert(v) for v in value]
        if isinstance(value, tuple):
            return tuple(convert(v) for v in value)
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        return value

    return convert(params)


class PostgresTransaction:
    """
    Query executor bound to one connection inside an open transaction.

    Exposes the same execute* methods as PostgresClient, so stores can take
    either one. Commit and rollback are driven by whoever opened it:
    PostgresClient.transaction() or PostgresUnitOfWork.
    """

    def __init__(self, conn):
        self._conn = conn

    def set_user(self, user_id: UUID) -> None:
        """Expose the acting user to SQL as app.current_user_id until commit."""
        self.execute(
            "SELECT set_config('app.current_user_id', %s, true)",
            (str(user_id),)
        )

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        with self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(query, _convert_params(params))
            if cur.description:
                return [dict(row) for row in cur.fetchall()]
            return []

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """Execute query, return first value of first row or None."""
        with self._conn.cursor() as cur:
            cur.execute(query, _convert_params(params))
            result = cur.fetchone()
            return result[0] if result else None

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE/DELETE with RETURNING, return results."""
        return self.execute(query, params)

    def execute_values(
        self,
        query: str,
        rows: Sequence[Tuple],
        template: str | None = None,
    ) -> List[Dict[str, Any]]:
        """
        Batch INSERT via psycopg2.extras.execute_values.

        Query must contain a single VALUES %s placeholder and may end with
        RETURNING. Returns the returned rows (empty list without RETURNING).
        """
        if not rows:
            return []
        with self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            returned = psycopg2.extras.execute_values(
                cur,
                query,
                [_convert_params(tuple(row)) for row in rows],
                template=template,
                fetch="RETURNING" in query.upper(),
            )
            return [dict(row) for row in returned or []]


class PostgresClient:
    """
    PostgreSQL client with pooled connections.

    Usage:
        db = PostgresClient(database_url)

        # One statement, autocommitted
        rows = db.execute("SELECT * FROM attribute_definitions")

        # Several statements, all or nothing
        with db.transaction(user_id=ctx.user_id) as tx:
            tx.execute("DELETE FROM attribute_bindings WHERE id = ANY(%s)", (ids,))
            tx.execute_values("INSERT INTO attribute_bindings (...) VALUES %s", rows)
    """

    # Class-level connection pools shared across instances
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, config: CatalogConfig | None = None):
        self._database_url = database_url
        self._config = config or CatalogConfig()
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        """Create connection pool if it doesn't exist."""
        with self._pools_lock:
            if self._database_url not in self._connection_pools:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._config.pool_min_connections,
                    maxconn=self._config.pool_max_connections,
                    dsn=self._database_url,
                    connect_timeout=self._config.connect_timeout_seconds,
                )

                global _jsonb_registered
                if not _jsonb_registered:
                    psycopg2.extras.register_default_jsonb(globally=True)
                    _jsonb_registered = True

                self._connection_pools[self._database_url] = pool
                logger.info("Connection pool created")

    @contextmanager
    def get_connection(self):
        """Borrow a connection from the pool."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = None

        try:
            conn = pool.getconn()
            if conn is None:
                raise RuntimeError("Could not get connection from pool")
            yield conn

        finally:
            if conn:
                pool.putconn(conn)

    @contextmanager
    def transaction(self, user_id: UUID | None = None) -> Iterator[PostgresTransaction]:
        """
        Run several statements as one atomic unit.

        Commits when the block exits cleanly. Any exception rolls back and
        is re-raised unchanged.

        Args:
            user_id: Acting user, exposed to SQL as app.current_user_id
                for this transaction only
        """
        with self.get_connection() as conn:
            try:
                tx = PostgresTransaction(conn)
                if user_id is not None:
                    tx.set_user(user_id)
                yield tx
                tx.commit()
            except BaseException:
                conn.rollback()
                raise

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        with self.transaction() as tx:
            return tx.execute(query, params)

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """Execute query, return first value of first row or None."""
        with self.transaction() as tx:
            return tx.execute_scalar(query, params)

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE with RETURNING, return results."""
        with self.transaction() as tx:
            return tx.execute_returning(query, params)

    def close(self) -> None:
        """Close connection pool."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]

    @classmethod
    def close_all_pools(cls) -> None:
        """Close all connection pools."""
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
