"""
This file contains tests for the statement lifecycle.
Functions:
- test_close_is_idempotent: Closing twice does not fail.
- test_close_releases_results: Closing releases current and pending results.
- test_operations_after_close: Every operation after close raises IllegalStateError.
- test_statement_context_manager: The with-block closes the statement.
- test_statement_after_connection_close: A statement is unusable once its connection closes.
- test_statement_does_not_keep_connection_alive: Statements hold a weak reference only.
- test_close_tolerates_result_release_failure: A failing release does not stop close().
- test_create_statement_on_closed_connection: Creating from a closed connection fails.
"""

import gc

import pytest

from mysql_stmt import IllegalStateError, MoreResults, Statement, connect


def test_close_is_idempotent(statement):
    statement.close()
    statement.close()
    assert statement.closed


def test_close_releases_results(statement):
    result = statement.execute_query("SELECT id FROM t")
    statement.close()
    assert result.closed


@pytest.mark.parametrize(
    "operation",
    [
        lambda s: s.execute("SELECT 1"),
        lambda s: s.execute_query("SELECT 1"),
        lambda s: s.execute_update("UPDATE t SET x=1"),
        lambda s: s.add_batch("UPDATE t SET x=1"),
        lambda s: s.clear_batch(),
        lambda s: s.execute_batch(),
        lambda s: s.get_more_results(MoreResults.CLOSE_CURRENT),
        lambda s: s.cancel(),
        lambda s: s.clear_warnings(),
        lambda s: s.set_cursor_name("c"),
        lambda s: s.result_set,
        lambda s: s.update_count,
        lambda s: s.long_update_count,
        lambda s: s.last_insert_id,
        lambda s: s.generated_keys,
        lambda s: s.warnings,
        lambda s: s.max_rows,
        lambda s: setattr(s, "max_rows", 1),
        lambda s: s.fetch_size,
        lambda s: setattr(s, "fetch_size", 1),
        lambda s: s.max_field_size,
        lambda s: s.query_timeout,
        lambda s: s.fetch_direction,
        lambda s: s.escape_processing,
        lambda s: s.result_set_type,
        lambda s: s.result_set_concurrency,
        lambda s: s.result_set_holdability,
        lambda s: s.connection,
    ],
)
def test_operations_after_close(protocol, statement, operation):
    statement.close()
    with pytest.raises(IllegalStateError):
        operation(statement)
    assert protocol.commands == []


def test_statement_context_manager(protocol, db_connection):
    with db_connection.create_statement() as stmt:
        stmt.execute("SELECT 1")
        result = stmt.result_set
    assert stmt.closed
    assert result.closed


def test_statement_after_connection_close(db_connection):
    stmt = db_connection.create_statement()
    db_connection.close()
    assert stmt.closed
    with pytest.raises(IllegalStateError):
        stmt.execute("SELECT 1")


def test_statement_does_not_keep_connection_alive(protocol):
    """Dropping the last connection reference leaves the statement without a connection"""
    conn = connect(protocol)
    stmt = Statement(conn)
    del conn
    gc.collect()
    assert protocol.closed
    with pytest.raises(IllegalStateError):
        stmt.execute("SELECT 1")
    stmt.close()


def test_close_tolerates_result_release_failure(statement):
    result = statement.execute_query("SELECT id FROM t")

    def failing_close():
        raise RuntimeError("socket already gone")

    result.close = failing_close
    statement.close()
    assert statement.closed


def test_create_statement_on_closed_connection(db_connection):
    db_connection.close()
    with pytest.raises(IllegalStateError):
        Statement(db_connection)
