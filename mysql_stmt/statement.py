"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the Statement class, which executes SQL text on a shared
Connection and tracks the results, warnings and batch produced by it.
Resource Management:
- Statements are tracked by their parent connection through weak references.
- A statement only holds a weak reference to its connection.
- Closing the connection closes every statement created from it.
- Executing again, advancing with get_more_results() or closing the statement
  releases the current result.
"""
import weakref
from typing import List, Optional

from mysql_stmt.constants import (
    EXECUTE_FAILED,
    MAX_ROWS,
    MAX_UPDATE_COUNT,
    NO_ROW_LIMIT,
    SELECT_LIMIT_DEFAULT,
    STREAMING_FETCH_SIZE,
    UNKNOWN_INSERT_ID,
    AutoGeneratedKeys,
    FetchDirection,
    MoreResults,
    ResultSetConcurrency,
    ResultSetHoldability,
    ResultSetType,
)
from mysql_stmt.escape import EscapeProcessor
from mysql_stmt.exceptions import (
    BatchUpdateError,
    Error,
    ExpectedUpdateGotRowsError,
    IllegalStateError,
    InvalidArgumentError,
    LimitExceededError,
    NotAQueryError,
    ReadOnlyViolationError,
    SQLWarning,
)
from mysql_stmt.helpers import (
    has_limit_clause,
    is_select_statement,
    log,
    sanitize_user_input,
    select_limit_directive,
)
from mysql_stmt.logging import logger
from mysql_stmt.result import ResultSet


def _check_int(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"Illegal value for {name}: {value!r}")


class Statement:
    """
    Executes SQL statements on a connection and exposes their results.

    Attributes:
        closed: True once close() has been called.

    Methods:
        execute(sql) -> True if the result carries rows.
        execute_query(sql) -> ResultSet.
        execute_update(sql) -> Number of affected rows.
        get_more_results(mode) -> True if the next result carries rows.
        add_batch(sql) -> None.
        clear_batch() -> None.
        execute_batch() -> List of per-statement update counts.
        clear_warnings() -> None.
        cancel() -> None.
        close() -> None.
    """

    # The statement is not safe for concurrent use: results, the lookahead
    # slot, the batch and the warning chain are plain attributes. Callers sharing
    # one statement between threads must serialize access themselves.

    def __init__(
        self,
        connection,
        catalog: Optional[str] = None,
        result_set_type: int = ResultSetType.FORWARD_ONLY,
        result_set_concurrency: int = ResultSetConcurrency.READ_ONLY,
    ) -> None:
        """
        Initialize the statement.

        Args:
            connection: The live Connection creating this statement.
            catalog: The catalog every execution of this statement runs against.
                None means "whatever the connection has selected".
            result_set_type: Scrollability of produced results.
            result_set_concurrency: Updatability of produced results.

        Raises:
            IllegalStateError: If the connection is missing or closed.
            InvalidArgumentError: If a result-set flag is not recognised.
        """
        if connection is None or connection.closed:
            raise IllegalStateError("Connection is closed.")
        try:
            self._result_set_type = ResultSetType(result_set_type)
            self._result_set_concurrency = ResultSetConcurrency(result_set_concurrency)
        except ValueError as e:
            raise InvalidArgumentError(f"Illegal result set flag: {e}") from e

        self._connection_ref = weakref.ref(connection)
        self._catalog = catalog
        self._escaper = EscapeProcessor()
        self._do_escape_processing = True
        self._max_field_size = connection.max_allowed_packet
        self._max_rows = NO_ROW_LIMIT
        self._fetch_size = 0
        self._timeout = 0
        self._results: Optional[ResultSet] = None
        self._next_results: Optional[ResultSet] = None
        self._batched_args: List[str] = []
        self._last_insert_id = UNKNOWN_INSERT_ID
        self._warning_chain: Optional[SQLWarning] = None
        self._trace_id = logger.generate_trace_id("STMT")
        self.closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _check_closed(self) -> None:
        """
        Check if the statement is closed and raise an exception if it is.

        Raises:
            IllegalStateError: If the statement is closed.
        """
        if self.closed:
            raise IllegalStateError("No operations allowed after statement closed")

    def _get_connection(self):
        connection = self._connection_ref() if self._connection_ref is not None else None
        if connection is None or connection.closed:
            raise IllegalStateError("Connection is closed.")
        return connection

    @property
    def connection(self):
        """The connection that created this statement."""
        self._check_closed()
        return self._get_connection()

    def close(self) -> None:
        """
        Close the statement.

        Releases the current and pending results and forgets the connection.
        Failures while releasing results are logged and suppressed so that close
        always completes. Closing an already closed statement is a no-op.
        """
        if self.closed:
            return

        pending = self._next_results
        self._release_quietly(self._results)
        if pending is not None and pending is not self._results:
            self._release_quietly(pending)

        self._results = None
        self._next_results = None
        self._connection_ref = None
        self._warning_chain = None
        self._escaper = None
        self._batched_args = []
        self.closed = True
        log('debug', "Statement %s closed", self._trace_id)

    def __enter__(self) -> "Statement":
        self._check_closed()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __del__(self):
        """
        Destructor to ensure the statement's results are released even if
        close() was not called explicitly.
        """
        if "closed" in self.__dict__ and not self.closed:
            try:
                self.close()
            except Exception as e:
                # Don't raise an exception in __del__, just log it
                log('error', "Error during statement cleanup: %s", e)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def max_field_size(self) -> int:
        """Largest number of bytes returned for a character or binary column."""
        self._check_closed()
        return self._max_field_size

    @max_field_size.setter
    def max_field_size(self, max_size: int) -> None:
        """
        Raises:
            InvalidArgumentError: If max_size is negative.
            LimitExceededError: If max_size exceeds the connection's max allowed packet.
        """
        self._check_closed()
        _check_int("max_field_size", max_size)
        if max_size < 0:
            raise InvalidArgumentError(f"Illegal value for max_field_size: {max_size}")
        max_buf = self._get_connection().max_allowed_packet
        if max_size > max_buf:
            raise LimitExceededError(f"Can not set max field size > max allowed packet: {max_buf}")
        self._max_field_size = max_size

    @property
    def max_rows(self) -> int:
        """Row limit for results of this statement; 0 means unlimited."""
        self._check_closed()
        return 0 if self._max_rows <= 0 else self._max_rows

    @max_rows.setter
    def max_rows(self, max_rows: int) -> None:
        """
        Raises:
            InvalidArgumentError: If max_rows is outside [0, MAX_ROWS].
        """
        self._check_closed()
        _check_int("max_rows", max_rows)
        if max_rows > MAX_ROWS or max_rows < 0:
            raise InvalidArgumentError(f"max_rows out of range: {max_rows} (valid range is 0..{MAX_ROWS})")
        connection = self._get_connection()
        self._max_rows = NO_ROW_LIMIT if max_rows == 0 else max_rows
        # Connections only start paying for limit directives once somebody asks
        connection.max_rows_changed()

    @property
    def fetch_size(self) -> int:
        self._check_closed()
        return self._fetch_size

    @fetch_size.setter
    def fetch_size(self, rows: int) -> None:
        """
        Set the number of rows to fetch per round trip.

        STREAMING_FETCH_SIZE, together with a forward-only read-only statement,
        requests a streaming result.

        Raises:
            InvalidArgumentError: If rows is negative (and not STREAMING_FETCH_SIZE)
                or exceeds a bounded max_rows.
        """
        self._check_closed()
        _check_int("fetch_size", rows)
        if (rows < 0 and rows != STREAMING_FETCH_SIZE) or (
            self._max_rows > 0 and rows > self._max_rows
        ):
            raise InvalidArgumentError(f"Illegal value for fetch_size: {rows}")
        self._fetch_size = rows

    @property
    def query_timeout(self) -> int:
        """Timeout hint in seconds. Stored only; enforcement belongs to the connection layer."""
        self._check_closed()
        return self._timeout

    @query_timeout.setter
    def query_timeout(self, seconds: int) -> None:
        self._check_closed()
        _check_int("query_timeout", seconds)
        if seconds < 0:
            raise InvalidArgumentError(f"Illegal value for query_timeout: {seconds}")
        self._timeout = seconds

    @property
    def fetch_direction(self) -> FetchDirection:
        """Rows are always processed forward, whatever hint was given."""
        self._check_closed()
        return FetchDirection.FORWARD

    @fetch_direction.setter
    def fetch_direction(self, direction: int) -> None:
        self._check_closed()
        if isinstance(direction, bool):
            raise InvalidArgumentError(f"Illegal value for fetch_direction: {direction!r}")
        try:
            FetchDirection(direction)
        except ValueError as e:
            raise InvalidArgumentError(f"Illegal value for fetch_direction: {direction!r}") from e

    @property
    def escape_processing(self) -> bool:
        self._check_closed()
        return self._do_escape_processing

    @escape_processing.setter
    def escape_processing(self, enable: bool) -> None:
        self._check_closed()
        self._do_escape_processing = bool(enable)

    @property
    def result_set_type(self) -> ResultSetType:
        self._check_closed()
        return self._result_set_type

    @property
    def result_set_concurrency(self) -> ResultSetConcurrency:
        self._check_closed()
        return self._result_set_concurrency

    @property
    def result_set_holdability(self) -> ResultSetHoldability:
        self._check_closed()
        return ResultSetHoldability.HOLD_CURSORS_OVER_COMMIT

    def set_cursor_name(self, name: str) -> None:
        """Named cursors are not supported; the name is ignored."""
        self._check_closed()

    def cancel(self) -> None:
        """
        Execution is synchronous, so there is never an in-flight statement on
        another thread to interrupt. This is a no-op.
        """
        self._check_closed()

    # ------------------------------------------------------------------
    # Results and diagnostics
    # ------------------------------------------------------------------

    @property
    def result_set(self) -> Optional[ResultSet]:
        """The current result if it carries rows, else None."""
        self._check_closed()
        if self._results is not None and not self._results.closed and self._results.really_result():
            return self._results
        return None

    @property
    def long_update_count(self) -> int:
        """Affected rows of the current result, or -1 if it carries rows or there is none."""
        self._check_closed()
        if self._results is None or self._results.really_result():
            return -1
        return self._results.update_count

    @property
    def update_count(self) -> int:
        """long_update_count truncated to a 32-bit signed value."""
        count = self.long_update_count
        return min(count, MAX_UPDATE_COUNT)

    @property
    def last_insert_id(self) -> int:
        self._check_closed()
        return self._last_insert_id

    @property
    def generated_keys(self) -> ResultSet:
        """A single-row result holding last_insert_id in its GENERATED_KEY column."""
        self._check_closed()
        result = ResultSet.generated_key(self._last_insert_id)
        result.set_connection(self._get_connection())
        return result

    @property
    def warnings(self) -> Optional[SQLWarning]:
        """Head of the warning chain reported by the last execution, or None."""
        self._check_closed()
        return self._warning_chain

    def clear_warnings(self) -> None:
        self._check_closed()
        self._warning_chain = None

    def get_more_results(self, mode: int = MoreResults.CLOSE_CURRENT) -> bool:
        """
        Move to the next result.

        Only one lookahead result is kept. The pending result (if any) becomes
        the current one and the pending slot is emptied.

        Args:
            mode: One of MoreResults.CLOSE_CURRENT, CLOSE_ALL or KEEP_CURRENT.

        Returns:
            True if the new current result carries rows.

        Raises:
            InvalidArgumentError: If mode is not a MoreResults value.
        """
        self._check_closed()
        if isinstance(mode, bool):
            raise InvalidArgumentError(f"Illegal flag for get_more_results(): {mode!r}")
        try:
            mode = MoreResults(mode)
        except ValueError as e:
            raise InvalidArgumentError(f"Illegal flag for get_more_results(): {mode!r}") from e

        if self._results is not None and mode in (MoreResults.CLOSE_CURRENT, MoreResults.CLOSE_ALL):
            self._release_quietly(self._results)

        self._results = self._next_results
        self._next_results = None

        return (
            self._results is not None
            and not self._results.closed
            and self._results.really_result()
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, sql: str, auto_generated_keys: Optional[AutoGeneratedKeys] = None) -> bool:
        """
        Execute any kind of statement.

        Args:
            sql: SQL text.
            auto_generated_keys: Accepted for API compatibility and ignored;
                generated keys are always available through generated_keys.

        Returns:
            True if the result carries rows, False if it is an update count.

        Raises:
            IllegalStateError: If the statement is closed.
            ReadOnlyViolationError: If the connection is read-only and the
                statement does not start with 'S'.
            DatabaseError: Whatever the server reports for the statement.
        """
        self._check_closed()
        connection = self._get_connection()
        self._check_sql(sql)
        self._check_read_only(connection, sql)
        sql = self._process_escapes(sql)

        self._release_current_result()
        is_query = is_select_statement(sql)
        result = self._dispatch(
            connection,
            sql,
            is_query,
            self._result_set_concurrency,
            self._create_streaming_result_set(),
        )
        self._bind_result(connection, result)
        self._results = result
        return result.really_result()

    def execute_query(self, sql: str) -> ResultSet:
        """
        Execute a statement that must produce rows.

        Returns:
            ResultSet: The rows produced by the statement.

        Raises:
            IllegalStateError: If the statement is closed.
            NotAQueryError: If the statement produced an update count. When
                autocommit is off the transaction is rolled back first.
            DatabaseError: Whatever the server reports for the statement.
        """
        self._check_closed()
        connection = self._get_connection()
        self._check_sql(sql)
        sql = self._process_escapes(sql)

        self._release_current_result()
        result = self._dispatch(
            connection,
            sql,
            True,
            self._result_set_concurrency,
            self._create_streaming_result_set(),
        )
        self._bind_result(connection, result)
        # A second execute_query() before get_more_results() replaces the pending slot
        self._next_results = result
        self._results = self._next_results

        if not result.really_result():
            self._rollback_quietly(connection)
            raise NotAQueryError()

        return result

    def execute_update(self, sql: str, auto_generated_keys: Optional[AutoGeneratedKeys] = None) -> int:
        """
        Execute a statement that must not produce rows.

        Returns:
            int: Number of affected rows, truncated to a 32-bit signed value.

        Raises:
            IllegalStateError: If the statement is closed.
            ReadOnlyViolationError: If the connection is read-only and the
                statement does not start with 'S'.
            ExpectedUpdateGotRowsError: If the statement produced rows. When
                autocommit is off the transaction is rolled back first.
            DatabaseError: Whatever the server reports for the statement.
        """
        self._check_closed()
        connection = self._get_connection()
        self._check_sql(sql)
        self._check_read_only(connection, sql)
        sql = self._process_escapes(sql)

        self._release_current_result()
        result = self._dispatch(connection, sql, False, ResultSetConcurrency.READ_ONLY, False)
        self._bind_result(connection, result)

        if result.really_result():
            self._rollback_quietly(connection)
            self._release_quietly(result)
            raise ExpectedUpdateGotRowsError()

        self._results = result
        return min(result.update_count, MAX_UPDATE_COUNT)

    def add_batch(self, sql: str) -> None:
        """Queue a statement for execute_batch(). None and empty text are ignored."""
        self._check_closed()
        if sql:
            self._batched_args.append(sql)

    def clear_batch(self) -> None:
        self._check_closed()
        self._batched_args.clear()

    @property
    def batch(self) -> List[str]:
        """A copy of the queued batch, in insertion order."""
        self._check_closed()
        return list(self._batched_args)

    def execute_batch(self) -> List[int]:
        """
        Run every queued statement through execute_update(), in order.

        A failing entry does not stop the batch: its slot is set to
        EXECUTE_FAILED and the remaining entries still run. The queue is
        emptied whether the batch succeeds or fails.

        Returns:
            List[int]: One update count per queued statement.

        Raises:
            IllegalStateError: If the statement is closed.
            ReadOnlyViolationError: If the connection is read-only.
            BatchUpdateError: If any entry failed. Carries the last failure and
                the full list of per-entry outcomes.
        """
        self._check_closed()
        try:
            if self._get_connection().read_only:
                raise ReadOnlyViolationError()

            entries = list(self._batched_args)
            update_counts = [EXECUTE_FAILED] * len(entries)
            last_error: Optional[Error] = None

            for i, sql in enumerate(entries):
                try:
                    update_counts[i] = self.execute_update(sql)
                except Error as e:
                    last_error = e
                    log('warning', "Batch entry %d/%d failed: %s", i + 1, len(entries), e)

            if last_error is not None:
                raise BatchUpdateError(last_error, update_counts) from last_error

            log('debug', "Executed batch of %d statements", len(entries))
            return update_counts
        finally:
            self._batched_args.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _check_sql(sql: str) -> None:
        if not isinstance(sql, str) or not sql.strip():
            raise InvalidArgumentError(f"SQL statement must be a non-empty string, got {sql!r}")

    @staticmethod
    def _check_read_only(connection, sql: str) -> None:
        if connection.read_only and not is_select_statement(sql):
            raise ReadOnlyViolationError()

    def _process_escapes(self, sql: str) -> str:
        if self._do_escape_processing:
            return self._escaper.rewrite(sql)
        return sql

    def _create_streaming_result_set(self) -> bool:
        """Stream only forward-only, read-only results with the streaming fetch size."""
        return (
            self._result_set_type == ResultSetType.FORWARD_ONLY
            and self._result_set_concurrency == ResultSetConcurrency.READ_ONLY
            and self._fetch_size == STREAMING_FETCH_SIZE
        )

    def _dispatch(self, connection, sql: str, is_query: bool, concurrency: int, streaming: bool) -> ResultSet:
        """
        Run one statement under the connection mutex.

        The catalog swap, limit directive and dispatch happen as one unit, and
        the connection's previous catalog is restored before returning, even
        when dispatch fails. If both dispatch and the restore fail, the
        dispatch error is raised. Log records emitted meanwhile carry this
        statement's trace id.
        """
        token = logger.set_trace_id(self._trace_id)
        try:
            with connection.mutex:
                old_catalog = connection.catalog
                swap_catalog = self._catalog is not None and old_catalog != self._catalog
                try:
                    if swap_catalog:
                        connection.catalog = self._catalog
                    log('debug', "Statement %s executing: %s", self._trace_id, sanitize_user_input(sql, 200))
                    result = self._execute_with_row_limit(connection, sql, is_query, concurrency, streaming)
                except Exception:
                    if swap_catalog:
                        self._restore_catalog_quietly(connection, old_catalog)
                    raise
                if swap_catalog:
                    try:
                        connection.catalog = old_catalog
                    except Exception:
                        self._release_quietly(result)
                        raise
                return result
        finally:
            logger.reset_trace_id(token)

    def _restore_catalog_quietly(self, connection, catalog: str) -> None:
        try:
            connection.catalog = catalog
        except Exception as e:
            log('warning', "Ignoring error while restoring catalog '%s': %s", catalog, e)

    def _execute_with_row_limit(self, connection, sql: str, is_query: bool, concurrency: int, streaming: bool) -> ResultSet:
        # Until a statement on this connection sets max_rows, skip the extra round trip
        if not connection.use_max_rows():
            return connection.exec_sql(sql, NO_ROW_LIMIT, concurrency, streaming, is_query)

        if is_query:
            if has_limit_clause(sql):
                return connection.exec_sql(sql, self._max_rows, concurrency, streaming, True)
            directive = select_limit_directive(self._max_rows)
        else:
            # Keep an earlier query's limit from applying to this statement
            directive = SELECT_LIMIT_DEFAULT

        log('debug', "Issuing row limit directive: %s", directive)
        connection.exec_sql(directive, NO_ROW_LIMIT, ResultSetConcurrency.READ_ONLY, False, False)
        return connection.exec_sql(sql, NO_ROW_LIMIT, concurrency, streaming, is_query)

    def _bind_result(self, connection, result: ResultSet) -> None:
        self._last_insert_id = result.update_id
        self._warning_chain = result.warnings
        result.set_connection(connection)
        result.set_statement(self)
        result.set_result_set_type(self._result_set_type)
        result.set_result_set_concurrency(self._result_set_concurrency)

    def _release_current_result(self) -> None:
        # Warnings from the previous execution do not carry over
        self._warning_chain = None
        if self._results is not None:
            self._release_quietly(self._results)
            self._results = None

    def _release_quietly(self, result: Optional[ResultSet]) -> None:
        """Best-effort close; a failure is logged and discarded."""
        if result is None:
            return
        try:
            result.close()
        except Exception as e:
            log('warning', "Ignoring error while releasing result: %s", e)

    def _rollback_quietly(self, connection) -> None:
        """
        Best-effort rollback after a statement-type mismatch. A failure is logged
        and discarded so the mismatch error reaches the caller.
        """
        if connection.autocommit:
            return
        try:
            connection.rollback()
        except Exception as e:
            log('warning', "Ignoring error during rollback after statement type mismatch: %s", e)
