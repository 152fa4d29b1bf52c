"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module defines the Connection class, which owns the session state shared by
every statement created from it: the mutex, the current catalog, the autocommit and
read-only flags, and the row-limit policy.

Statements and cursors are held weakly; close() closes whichever are still alive.
"""
import threading
import weakref
from typing import Optional

from mysql_stmt.constants import NO_ROW_LIMIT, ResultSetConcurrency, ResultSetType
from mysql_stmt.cursor import Cursor
from mysql_stmt.exceptions import IllegalStateError, InterfaceError, InvalidArgumentError, ProgrammingError
from mysql_stmt.helpers import get_settings, log, sanitize_user_input
from mysql_stmt.logging import logger
from mysql_stmt.protocol import ServerProtocol
from mysql_stmt.result import ResultSet
from mysql_stmt.statement import Statement


class Connection:
    """
    A session with the server, shared by all statements created from it.

    Catalog and row limit are session-global on the server, so every statement
    must hold ``mutex`` while it swaps the catalog, issues limit directives and
    dispatches. exec_sql() itself also takes the mutex, which is reentrant.

    Methods:
        create_statement() -> Statement
        cursor() -> Cursor
        exec_sql(sql, max_rows, concurrency, streaming, is_query) -> ResultSet
        commit() -> None
        rollback() -> None
        close() -> None
    """

    def __init__(
        self,
        protocol: ServerProtocol,
        catalog: str = "",
        autocommit: bool = True,
        read_only: bool = False,
        max_allowed_packet: Optional[int] = None,
    ) -> None:
        """
        Initialize the connection over an established protocol session.

        Args:
            protocol: The wire-level session to dispatch to.
            catalog (str): Initial catalog; selected on the server when not empty.
            autocommit (bool): Initial autocommit mode as reported by the session.
            read_only (bool): Reject data-modifying statements from this connection.
            max_allowed_packet (int): Largest packet the server accepts; defaults to
                the process-wide setting.

        Raises:
            InterfaceError: If protocol does not implement the ServerProtocol interface.
            InvalidArgumentError: If max_allowed_packet is not positive.
        """
        if not isinstance(protocol, ServerProtocol):
            raise InterfaceError(
                "Protocol object does not implement send_query/select_database/close"
            )
        if max_allowed_packet is None:
            max_allowed_packet = get_settings().default_max_allowed_packet
        if max_allowed_packet <= 0:
            raise InvalidArgumentError(f"Illegal value for max_allowed_packet: {max_allowed_packet}")

        self._protocol = protocol
        self._mutex = threading.RLock()
        self._catalog = catalog or ""
        self._autocommit = bool(autocommit)
        self._read_only = bool(read_only)
        self._max_allowed_packet = max_allowed_packet
        self._use_max_rows = False
        self._closed = False
        self._trace_id = logger.generate_trace_id("CONN")

        # Statements and cursors hold only weak references back to us, and we
        # hold only weak references to them
        self._statements = weakref.WeakSet()
        self._cursors = weakref.WeakSet()

        if self._catalog:
            self._protocol.select_database(self._catalog)
        log('info', "Connection %s opened (catalog=%s, autocommit=%s, read_only=%s)",
            self._trace_id, self._catalog, self._autocommit, self._read_only)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def mutex(self) -> threading.RLock:
        """The lock serializing catalog swaps, limit directives and dispatch."""
        return self._mutex

    @property
    def max_allowed_packet(self) -> int:
        return self._max_allowed_packet

    @property
    def catalog(self) -> str:
        """Return the catalog currently selected on the session."""
        return self._catalog

    @catalog.setter
    def catalog(self, catalog: str) -> None:
        """
        Select a different catalog on the session.

        Raises:
            IllegalStateError: If the connection is closed.
        """
        self._check_closed()
        with self._mutex:
            self._protocol.select_database(catalog)
            log('debug', "Catalog changed from '%s' to '%s'", self._catalog, catalog)
            self._catalog = catalog

    @property
    def autocommit(self) -> bool:
        """Whether each statement commits on its own."""
        return self._autocommit

    @autocommit.setter
    def autocommit(self, value: bool) -> None:
        self.setautocommit(value)
        log('info', "autocommit=%s", value)

    def setautocommit(self, value: bool = False) -> None:
        """
        Send SET autocommit when the mode actually changes.

        Raises:
            DatabaseError: If the server rejects the mode change.
        """
        value = bool(value)
        if value == self._autocommit:
            return
        self.exec_sql(f"SET autocommit={int(value)}", is_query=False)
        self._autocommit = value

    @property
    def read_only(self) -> bool:
        return self._read_only

    @read_only.setter
    def read_only(self, value: bool) -> None:
        self._check_closed()
        self._read_only = bool(value)

    def use_max_rows(self) -> bool:
        """
        Return True once any statement on this connection has set a row limit.

        Until then statements skip row-limit governance entirely, saving the
        extra SET OPTION round trip.
        """
        return self._use_max_rows

    def max_rows_changed(self) -> None:
        """Record that a statement changed its max_rows setting."""
        self._use_max_rows = True

    def create_statement(
        self,
        result_set_type: int = ResultSetType.FORWARD_ONLY,
        result_set_concurrency: int = ResultSetConcurrency.READ_ONLY,
    ) -> Statement:
        """
        Return a new Statement bound to this connection and its current catalog.

        Raises:
            IllegalStateError: If the connection is closed.
            InvalidArgumentError: If the result-set shape flags are not recognised.
        """
        self._check_closed()
        statement = Statement(
            self,
            self._catalog,
            result_set_type=result_set_type,
            result_set_concurrency=result_set_concurrency,
        )
        self._statements.add(statement)
        return statement

    def cursor(self) -> Cursor:
        """
        Return a new PEP 249 Cursor object using the connection.

        Raises:
            IllegalStateError: If the connection is closed.
        """
        self._check_closed()
        cursor = Cursor(self, self.create_statement())
        self._cursors.add(cursor)
        return cursor

    def exec_sql(
        self,
        sql: str,
        max_rows: int = NO_ROW_LIMIT,
        concurrency: int = ResultSetConcurrency.READ_ONLY,
        streaming: bool = False,
        is_query: bool = True,
    ) -> ResultSet:
        """
        Dispatch one command to the server.

        Args:
            sql (str): The command text, already escape-processed.
            max_rows (int): Explicit row cap for this call; -1 means unlimited.
            concurrency (int): Concurrency mode for the returned result.
            streaming (bool): Ask the protocol to stream rows; honoured for queries only.
            is_query (bool): Whether the caller classified the command as a query.

        Returns:
            ResultSet: The decoded response.

        Raises:
            IllegalStateError: If the connection is closed.
            DatabaseError: Whatever the protocol layer raises for the command.
        """
        with self._mutex:
            self._check_closed()
            streaming = bool(streaming and is_query)
            log('debug', "Dispatching (max_rows=%s, streaming=%s, is_query=%s): %s",
                max_rows, streaming, is_query, sanitize_user_input(sql, 200))
            result = self._protocol.send_query(sql, max_rows, streaming)
            if max_rows > 0 and result.really_result():
                result.truncate(max_rows)
            result.streaming = streaming
            result.set_result_set_concurrency(concurrency)
            result.set_connection(self)
            return result

    def commit(self) -> None:
        """
        Send COMMIT for the open transaction.

        Raises:
            IllegalStateError: If the connection is closed.
            ProgrammingError: If autocommit is enabled.
        """
        self._check_closed()
        if self._autocommit:
            raise ProgrammingError("Can't call commit when autocommit=true", sqlstate="S1000")
        self.exec_sql("COMMIT", is_query=False)
        log('info', "Transaction committed")

    def rollback(self) -> None:
        """
        Send ROLLBACK for the open transaction.

        Raises:
            IllegalStateError: If the connection is closed.
            ProgrammingError: If autocommit is enabled.
        """
        self._check_closed()
        if self._autocommit:
            raise ProgrammingError("Can't call rollback when autocommit=true", sqlstate="S1000")
        self.exec_sql("ROLLBACK", is_query=False)
        log('info', "Transaction rolled back")

    def _check_closed(self) -> None:
        if self._closed:
            raise IllegalStateError("Connection is closed.")

    def close(self) -> None:
        """
        Close every cursor and statement created from this connection, roll back
        an open transaction when autocommit is off, then close the protocol session.
        Closing an already closed connection is a no-op.

        Raises:
            DatabaseError: If there is an error while closing the session.
        """
        if self._closed:
            return

        close_errors = []
        for cursor in list(self._cursors):
            try:
                if not cursor.closed:
                    cursor.close()
            except Exception as e:
                close_errors.append(e)
                log('warning', "Error closing cursor: %s", e)
        self._cursors.clear()

        for statement in list(self._statements):
            try:
                statement.close()
            except Exception as e:
                close_errors.append(e)
                log('warning', "Error closing statement: %s", e)
        self._statements.clear()

        if close_errors:
            log('warning', "Encountered %d errors while closing statements", len(close_errors))

        try:
            if not self._autocommit:
                # Don't leave a partial transaction behind
                with self._mutex:
                    self._protocol.send_query("ROLLBACK", NO_ROW_LIMIT, False)
            self._protocol.close()
        except Exception as e:
            log('error', "Error closing database connection: %s", e)
            raise
        finally:
            self._closed = True

        log('info', "Connection %s closed", self._trace_id)

    def __del__(self):
        if "_closed" in self.__dict__ and not self._closed:
            try:
                self.close()
            except Exception as e:
                log('error', "Error during connection cleanup: %s", e)
