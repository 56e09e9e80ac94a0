"""PostgreSQL unit of work: one pooled connection, one transaction."""

import logging
from contextlib import ExitStack
from types import TracebackType
from typing import Callable, Literal

from clients.postgres_client import PostgresClient, PostgresTransaction
from core.audit import AuditLogger
from core.config import CatalogConfig
from core.models import BindingScope
from core.stores.postgres_stores import (
    PostgresAttributeStore,
    PostgresAttributeValueStore,
    PostgresRelationStore,
)
from utils.request_context import RequestContext

logger = logging.getLogger(__name__)


class PostgresUnitOfWork:
    """
    Binds the catalog stores and the audit logger to a single transaction.

    Usage:
        with PostgresUnitOfWork(db, ctx) as uow:
            uow.lock_entity(BindingScope.SKU, sku_id)
            current = uow.relations.find_by_entity_and_attributes(...)
            uow.relations.batch_delete(stale_ids)
            uow.commit()

    Without commit() the block rolls back on exit.
    """

    def __init__(
        self,
        postgres: PostgresClient,
        ctx: RequestContext,
        config: CatalogConfig | None = None,
    ):
        self.postgres = postgres
        self.ctx = ctx
        self.config = config or CatalogConfig()
        self._stack: ExitStack | None = None
        self._tx: PostgresTransaction | None = None
        self._committed = False

    def __enter__(self) -> "PostgresUnitOfWork":
        self._stack = ExitStack()
        conn = self._stack.enter_context(self.postgres.get_connection())
        self._tx = PostgresTransaction(conn)
        self._committed = False
        try:
            self._tx.set_user(self.ctx.user_id)
        except BaseException:
            self._tx.rollback()
            self._stack.close()
            raise

        self.attributes = PostgresAttributeStore(self._tx)
        self.values = PostgresAttributeValueStore(self._tx)
        self.relations = PostgresRelationStore(self._tx)
        self.audit = AuditLogger(self._tx)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if exc_type is not None or not self._committed:
                self.rollback()
        finally:
            self._stack.close()
            self._stack = None
            self._tx = None
        return False  # don't swallow exceptions

    def lock_entity(self, scope: BindingScope, entity_id: int) -> None:
        """
        Take a transaction-scoped advisory lock for one entity.

        Concurrent reconciliations of the same entity queue here; different
        entities never contend. Released automatically at commit/rollback.
        """
        self._tx.execute(
            "SELECT pg_advisory_xact_lock(%s, hashtext(%s))",
            (self.config.entity_lock_namespace, f"{scope.value}:{entity_id}")
        )

    def commit(self) -> None:
        self._tx.commit()
        self._committed = True

    def rollback(self) -> None:
        self._tx.rollback()


def postgres_uow_factory(
    postgres: PostgresClient,
    config: CatalogConfig | None = None,
) -> Callable[[RequestContext], PostgresUnitOfWork]:
    """Factory the services call once per operation."""
    return lambda ctx: PostgresUnitOfWork(postgres, ctx, config)
