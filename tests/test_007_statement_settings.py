"""
This file contains tests for the validated settings of a statement.
Functions:
- test_max_rows_round_trip: Valid values read back unchanged, 0 meaning unlimited.
- test_max_rows_out_of_range: Invalid values are rejected and leave the old value.
- test_max_rows_rejects_non_int: Only integers are accepted.
- test_fetch_size_valid: Non-negative sizes and the streaming size are accepted.
- test_fetch_size_invalid: Negative sizes and sizes above a bounded max_rows are rejected.
- test_fetch_size_unbounded_max_rows: Any size is allowed without a row limit.
- test_max_field_size: The field size is bounded by the connection packet size.
- test_query_timeout: The timeout is stored and must be non-negative.
- test_fetch_direction: Known directions are accepted, reads are always FORWARD.
- test_escape_processing_flag: Escape processing is on by default and can be turned off.
- test_result_set_shape: Result-set type, concurrency and holdability are reported.
- test_no_op_operations: cancel() and set_cursor_name() have no effect.
"""

import pytest

from mysql_stmt import (
    MAX_ROWS,
    STREAMING_FETCH_SIZE,
    FetchDirection,
    InvalidArgumentError,
    LimitExceededError,
    ResultSetConcurrency,
    ResultSetHoldability,
    ResultSetType,
    connect,
)


@pytest.mark.parametrize("value", [0, 1, 1000, MAX_ROWS])
def test_max_rows_round_trip(statement, value):
    statement.max_rows = value
    assert statement.max_rows == value


@pytest.mark.parametrize("value", [MAX_ROWS + 1, -1])
def test_max_rows_out_of_range(db_connection, statement, value):
    statement.max_rows = 25
    with pytest.raises(InvalidArgumentError):
        statement.max_rows = value
    assert statement.max_rows == 25


def test_max_rows_rejects_non_int(db_connection, statement):
    for value in ("10", 1.5, True, None):
        with pytest.raises(InvalidArgumentError):
            statement.max_rows = value
    assert statement.max_rows == 0
    assert db_connection.use_max_rows() is False, "Rejected values must not switch on governance"


@pytest.mark.parametrize("rows", [0, 1, 500, STREAMING_FETCH_SIZE])
def test_fetch_size_valid(statement, rows):
    statement.fetch_size = rows
    assert statement.fetch_size == rows


def test_fetch_size_invalid(statement):
    with pytest.raises(InvalidArgumentError):
        statement.fetch_size = -1
    with pytest.raises(InvalidArgumentError):
        statement.fetch_size = STREAMING_FETCH_SIZE + 1

    statement.max_rows = 10
    statement.fetch_size = 10
    with pytest.raises(InvalidArgumentError):
        statement.fetch_size = 11
    assert statement.fetch_size == 10


def test_fetch_size_unbounded_max_rows(statement):
    statement.max_rows = 10
    statement.max_rows = 0
    statement.fetch_size = 1_000_000
    assert statement.fetch_size == 1_000_000


def test_max_field_size(protocol):
    conn = connect(protocol, max_allowed_packet=1024)
    stmt = conn.create_statement()
    assert stmt.max_field_size == 1024

    stmt.max_field_size = 0
    assert stmt.max_field_size == 0
    stmt.max_field_size = 1024
    assert stmt.max_field_size == 1024

    with pytest.raises(LimitExceededError):
        stmt.max_field_size = 1025
    with pytest.raises(InvalidArgumentError):
        stmt.max_field_size = -1
    assert stmt.max_field_size == 1024
    conn.close()


def test_query_timeout(statement):
    assert statement.query_timeout == 0
    statement.query_timeout = 30
    assert statement.query_timeout == 30
    with pytest.raises(InvalidArgumentError):
        statement.query_timeout = -5
    assert statement.query_timeout == 30


def test_fetch_direction(statement):
    for direction in FetchDirection:
        statement.fetch_direction = direction
        assert statement.fetch_direction == FetchDirection.FORWARD
    statement.fetch_direction = 1001

    for bad in (999, 1003, True, "forward"):
        with pytest.raises(InvalidArgumentError):
            statement.fetch_direction = bad


def test_escape_processing_flag(statement):
    assert statement.escape_processing is True
    statement.escape_processing = False
    assert statement.escape_processing is False


def test_result_set_shape(db_connection):
    stmt = db_connection.create_statement(
        ResultSetType.SCROLL_SENSITIVE, ResultSetConcurrency.UPDATABLE
    )
    assert stmt.result_set_type == ResultSetType.SCROLL_SENSITIVE
    assert stmt.result_set_concurrency == ResultSetConcurrency.UPDATABLE
    assert stmt.result_set_holdability == ResultSetHoldability.HOLD_CURSORS_OVER_COMMIT
    stmt.close()


def test_no_op_operations(protocol, statement):
    statement.cancel()
    statement.set_cursor_name("c1")
    assert protocol.commands == []
