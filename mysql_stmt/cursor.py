"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the Cursor class, a PEP 249 cursor built on top of a Statement.

A cursor owns exactly one Statement and closes it when the cursor is closed.
The parent connection keeps a weak reference to each cursor and closes the
cursors still open when the connection itself is closed.
"""
from typing import List, Optional, Sequence, Union

from mysql_stmt.exceptions import IllegalStateError, NotSupportedError, ProgrammingError
from mysql_stmt.helpers import log
from mysql_stmt.row import Row


class Cursor:
    """
    PEP 249 facade over a Statement.

    Every call is delegated to the Statement owned by the cursor, so row-limit,
    catalog, read-only and batch rules are the statement's rules.

    Attributes:
        connection: The Connection that created this cursor.
        statement: The Statement executing on behalf of this cursor.
        description: Column 7-tuples of the current result, or None for updates.
        rowcount: Rows in the current result, or the update count of the last operation.
        lastrowid: Generated key reported by the last execute operation.
        arraysize: Default batch size for fetchmany().
    """

    def __init__(self, connection, statement) -> None:
        self.connection = connection
        self.statement = statement
        self.description = None
        self.rowcount = -1
        self.lastrowid = None
        self.arraysize = 1
        self.closed = False
        self._result = None

    def _check_closed(self):
        if self.closed:
            raise IllegalStateError("Operation cannot be performed: the cursor is closed.")

    def _reset_cursor(self) -> None:
        self._result = None
        self.description = None
        self.rowcount = -1

    def _check_result(self):
        if self._result is None:
            raise ProgrammingError("No result set to fetch from; the last operation produced no rows.")
        return self._result

    def _load_current_result(self) -> None:
        result = self.statement.result_set
        self._result = result
        if result is not None:
            self.description = result.description
            self.rowcount = result.row_count
        else:
            self.description = None
            self.rowcount = self.statement.update_count

    def execute(self, operation: str, *parameters) -> "Cursor":
        """
        Run one SQL statement through the owned Statement and load its first result.

        Raises:
            NotSupportedError: If parameters are supplied; values must be inlined.
        """
        self._check_closed()
        if any(p for p in parameters):
            raise NotSupportedError("Parameter binding is not supported by this driver")
        self._reset_cursor()

        self.statement.execute(operation)
        self._load_current_result()
        self.lastrowid = self.statement.last_insert_id
        log('debug', "Cursor executed operation; rowcount=%s", self.rowcount)
        return self

    def executemany(self, operation: str, seq_of_parameters: Sequence) -> None:
        """
        Execute a data-modifying operation once per entry of seq_of_parameters
        using the statement batch.

        Each entry must be empty since values are inlined in the operation text.
        rowcount is the sum of the per-entry update counts.

        Raises:
            NotSupportedError: If any entry carries parameters.
            BatchUpdateError: If any entry failed.
        """
        self._check_closed()
        self._reset_cursor()
        seq_of_parameters = list(seq_of_parameters)
        for params in seq_of_parameters:
            if params:
                raise NotSupportedError("Parameter binding is not supported by this driver")

        self.statement.clear_batch()
        for _ in seq_of_parameters:
            self.statement.add_batch(operation)
        counts = self.statement.execute_batch()
        self.rowcount = sum(counts)
        self.lastrowid = self.statement.last_insert_id

    def fetchone(self) -> Union[None, Row]:
        """Next row of the current result, or None once it is exhausted."""
        self._check_closed()
        return self._check_result().fetchone()

    def fetchmany(self, size: Optional[int] = None) -> List[Row]:
        """
        Up to size rows of the current result (arraysize when size is None).
        A non-positive size returns an empty list.
        """
        self._check_closed()
        if size is None:
            size = self.arraysize
        if size <= 0:
            return []
        return self._check_result().fetchmany(size)

    def fetchall(self) -> List[Row]:
        """Every row not yet fetched from the current result."""
        self._check_closed()
        return self._check_result().fetchall()

    def nextset(self) -> Union[bool, None]:
        """
        Advance the Statement to its next result.

        Returns:
            True when a row result is now current, None when there is none.
        """
        self._check_closed()
        if self.statement.get_more_results():
            self._load_current_result()
            return True
        self._reset_cursor()
        return None

    def setinputsizes(self, sizes) -> None:
        """Accepted for PEP 249 compliance; does nothing."""
        self._check_closed()

    def setoutputsize(self, size, column=None) -> None:
        """Accepted for PEP 249 compliance; does nothing."""
        self._check_closed()

    def __iter__(self):
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    def __enter__(self) -> "Cursor":
        self._check_closed()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if not self.closed:
            self.close()

    def close(self) -> None:
        """
        Close the cursor and its Statement.

        Raises:
            IllegalStateError: If the cursor is already closed.
        """
        if self.closed:
            raise IllegalStateError("Cursor is already closed.")

        self.statement.close()
        self._result = None
        self.closed = True
        log('debug', "Cursor closed")
