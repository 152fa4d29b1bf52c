"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the ResultSet class, which holds one server response:
either tabular rows or an update count plus the generated key value.
Resource Management:
- A result is bound to the statement that produced it.
- Closing the statement (or executing on it again) closes its current result.
- Fetching from a closed result raises an exception.
"""
from typing import Any, Iterator, List, Optional, Sequence

from mysql_stmt.constants import ResultSetConcurrency, ResultSetType
from mysql_stmt.exceptions import IllegalStateError, InvalidArgumentError, SQLWarning
from mysql_stmt.row import Row


class ResultSet:
    """
    Represents the outcome of a single dispatched statement.

    Attributes:
        update_count: Rows affected by a data-modifying statement.
        update_id: Auto-generated key reported by the server.
        warnings: Head of the warning chain reported with this result, or None.
        streaming: Whether the protocol layer delivered the rows incrementally.

    Methods:
        really_result() -> True if the result carries rows.
        fetchone() -> Single Row or None when exhausted.
        fetchmany(size) -> List of Rows.
        fetchall() -> List of remaining Rows.
        close() -> None.
    """

    def __init__(
        self,
        columns: Optional[Sequence[str]] = None,
        rows: Optional[Sequence[Sequence[Any]]] = None,
        update_count: int = 0,
        update_id: int = 0,
        warnings: Optional[SQLWarning] = None,
    ) -> None:
        """
        Create a result.

        Args:
            columns: Column names. None means the result carries no rows.
            rows: Row values, one sequence per row.
            update_count: Affected-row count for update results.
            update_id: Generated key value for update results.
            warnings: Warning chain attached to the response.
        """
        self._columns = list(columns) if columns is not None else None
        self._rows = [list(row) for row in rows] if rows is not None else []
        self._column_map = {name: i for i, name in enumerate(self._columns or [])}
        self._position = 0
        self.update_count = update_count
        self.update_id = update_id
        self.warnings = warnings
        self.streaming = False
        self.closed = False
        self.connection = None
        self.statement = None
        self.result_set_type = ResultSetType.FORWARD_ONLY
        self.result_set_concurrency = ResultSetConcurrency.READ_ONLY

    @classmethod
    def generated_key(cls, value: int) -> "ResultSet":
        """Build the single-row, single-column GENERATED_KEY result."""
        return cls(columns=["GENERATED_KEY"], rows=[[value]])

    def really_result(self) -> bool:
        """Return True if the response carried rows rather than an update count."""
        return self._columns is not None

    @property
    def columns(self) -> List[str]:
        return list(self._columns or [])

    @property
    def description(self):
        """PEP 249 description: one 7-item sequence per column, or None."""
        if self._columns is None:
            return None
        return [(name, None, None, None, None, None, None) for name in self._columns]

    @property
    def row_count(self) -> int:
        """Number of rows held by a row result, or the update count otherwise."""
        if self._columns is None:
            return self.update_count
        return len(self._rows)

    def truncate(self, max_rows: int) -> None:
        """Drop rows beyond ``max_rows`` (no-op for non-positive values)."""
        if max_rows > 0 and len(self._rows) > max_rows:
            del self._rows[max_rows:]

    def set_connection(self, connection) -> None:
        self.connection = connection

    def set_statement(self, statement) -> None:
        self.statement = statement

    def set_result_set_type(self, result_set_type: int) -> None:
        self.result_set_type = result_set_type

    def set_result_set_concurrency(self, concurrency: int) -> None:
        self.result_set_concurrency = concurrency

    def _check_closed(self) -> None:
        if self.closed:
            raise IllegalStateError("Operation not allowed after ResultSet closed")

    def fetchone(self) -> Optional[Row]:
        """
        Fetch the next row.

        Returns:
            Single Row object or None if no more data is available.
        """
        self._check_closed()
        if self._position >= len(self._rows):
            return None
        row = Row(self._rows[self._position], self._column_map)
        self._position += 1
        return row

    def fetchmany(self, size: int = 1) -> List[Row]:
        """
        Fetch the next ``size`` rows.

        Raises:
            InvalidArgumentError: If size is negative.
        """
        self._check_closed()
        if size < 0:
            raise InvalidArgumentError(f"Illegal value for fetchmany(): {size}")
        end = min(self._position + size, len(self._rows))
        rows = [Row(values, self._column_map) for values in self._rows[self._position:end]]
        self._position = end
        return rows

    def fetchall(self) -> List[Row]:
        """Fetch all remaining rows."""
        self._check_closed()
        rows = [Row(values, self._column_map) for values in self._rows[self._position:]]
        self._position = len(self._rows)
        return rows

    def __iter__(self) -> Iterator[Row]:
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    def close(self) -> None:
        """Release the rows held by this result. Closing twice is a no-op."""
        if self.closed:
            return
        self._rows = []
        self._position = 0
        self.statement = None
        self.closed = True
