"""Tests for PostgresClient - pooled PostgreSQL with explicit transactions."""

from unittest.mock import MagicMock
from uuid import UUID

import pytest

from clients.postgres_client import PostgresTransaction, _convert_params

# Test user constant (must match conftest.py)
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")


class TestConvertParams:
    """UUID parameters are sent as text."""

    def test_converts_nested_uuids(self):
        params = (TEST_USER_ID, [TEST_USER_ID], {"id": TEST_USER_ID}, 5)

        assert _convert_params(params) == (
            str(TEST_USER_ID), [str(TEST_USER_ID)], {"id": str(TEST_USER_ID)}, 5
        )

    def test_none_passes_through(self):
        assert _convert_params(None) is None


class TestPostgresTransaction:
    """Executor over a mocked connection."""

    def _conn(self, rows=None, description=True):
        conn = MagicMock()
        cursor = conn.cursor.return_value.__enter__.return_value
        cursor.description = [("col",)] if description else None
        cursor.fetchall.return_value = rows or []
        return conn, cursor

    def test_set_user_is_transaction_local(self):
        """set_config is called with is_local = true."""
        conn, cursor = self._conn()

        PostgresTransaction(conn).set_user(TEST_USER_ID)

        query, params = cursor.execute.call_args.args
        assert "set_config('app.current_user_id', %s, true)" in query
        assert params == (str(TEST_USER_ID),)

    def test_execute_without_result_returns_empty_list(self):
        conn, _ = self._conn(description=False)

        assert PostgresTransaction(conn).execute("DELETE FROM attribute_bindings") == []

    def test_commit_and_rollback_delegate(self):
        conn, _ = self._conn()
        tx = PostgresTransaction(conn)

        tx.commit()
        tx.rollback()

        conn.commit.assert_called_once()
        conn.rollback.assert_called_once()

    def test_execute_values_skips_empty_batch(self):
        conn, _ = self._conn()

        assert PostgresTransaction(conn).execute_values("INSERT INTO t (a) VALUES %s", []) == []
        conn.cursor.assert_not_called()


class TestPostgresClientInit:
    """Connection pool initialization."""

    def test_creates_pool_with_valid_url(self, db):
        """Valid URL creates working connection pool."""
        result = db.execute_scalar("SELECT 1")
        assert result == 1


class TestExecuteMethods:
    """Query execution methods."""

    def test_execute_returns_list_of_dicts(self, db):
        """execute() returns list of row dicts."""
        results = db.execute("SELECT 1 as num, 'hello' as word")
        assert results == [{"num": 1, "word": "hello"}]

    def test_execute_empty_returns_empty_list(self, db):
        """No matching rows returns [], not None."""
        results = db.execute("SELECT 1 WHERE false")
        assert results == []

    def test_execute_single_returns_dict(self, db):
        """execute_single() returns first row as dict."""
        result = db.execute_single("SELECT 42 as answer")
        assert result == {"answer": 42}

    def test_execute_single_no_rows_returns_none(self, db):
        """execute_single() returns None for empty result."""
        result = db.execute_single("SELECT 1 WHERE false")
        assert result is None

    def test_execute_scalar_returns_value(self, db):
        """execute_scalar() returns first value of first row."""
        result = db.execute_scalar("SELECT 'test'")
        assert result == "test"

    def test_execute_scalar_no_rows_returns_none(self, db):
        """execute_scalar() returns None for empty result."""
        result = db.execute_scalar("SELECT 1 WHERE false")
        assert result is None


class TestTransaction:
    """All-or-nothing multi-statement work."""

    def test_user_visible_inside_transaction(self, db):
        """app.current_user_id is set for the transaction only."""
        with db.transaction(user_id=TEST_USER_ID) as tx:
            inside = tx.execute_scalar("SELECT current_setting('app.current_user_id', true)")

        outside = db.execute_scalar("SELECT current_setting('app.current_user_id', true)")

        assert inside == str(TEST_USER_ID)
        assert outside in (None, "")

    def test_exception_rolls_back(self, clean_db):
        """Nothing from a failed block is visible afterwards."""
        with pytest.raises(RuntimeError):
            with clean_db.transaction() as tx:
                tx.execute(
                    """
                    INSERT INTO attribute_definitions (name, attribute_kind, input_kind, created_at, updated_at)
                    VALUES ('Color', 'SKU', 'MULTI_SELECT', now(), now())
                    """
                )
                raise RuntimeError("abort")

        assert clean_db.execute_scalar("SELECT count(*) FROM attribute_definitions") == 0

    def test_clean_exit_commits(self, clean_db):
        with clean_db.transaction() as tx:
            tx.execute_values(
                """
                INSERT INTO attribute_definitions (name, attribute_kind, input_kind, created_at, updated_at)
                VALUES %s
                """,
                [("Color", "SKU", "MULTI_SELECT", "now", "now"), ("Size", "SKU", "SINGLE_SELECT", "now", "now")],
            )

        assert clean_db.execute_scalar("SELECT count(*) FROM attribute_definitions") == 2
