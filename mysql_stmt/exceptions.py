"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains custom exception classes for the mysql_stmt package.
These classes are used to raise exceptions when an error occurs while executing a statement.
"""

from typing import List, Optional


class Exception(Exception):
    """
    Root of every error and warning raised by mysql_stmt.

    Carries the driver's own description, the server message with its vendor
    tag stripped, the SQLSTATE and the server error number.
    """

    def __init__(
        self,
        driver_error: str,
        ddbc_error: str = "",
        sqlstate: Optional[str] = None,
        vendor_code: int = 0,
    ) -> None:
        self.driver_error = driver_error
        self.ddbc_error = truncate_error_message(ddbc_error) if ddbc_error else driver_error
        self.sqlstate = sqlstate
        self.vendor_code = vendor_code
        self.message = f"Driver Error: {self.driver_error}; DDBC Error: {self.ddbc_error}"
        super().__init__(self.message)


class Warning(Exception):
    """Server diagnostics that did not stop the statement (SQLSTATE class 01)."""


class SQLWarning(Warning):
    """
    A diagnostic reported alongside a result.

    Warnings form a singly-linked chain: the statement exposes the head and
    each warning points at the next one through ``next_warning``.
    """

    def __init__(self, reason: str, sqlstate: str = "01000", vendor_code: int = 0) -> None:
        super().__init__(reason, reason, sqlstate, vendor_code)
        self.next_warning: Optional["SQLWarning"] = None

    def set_next_warning(self, warning: "SQLWarning") -> None:
        """Append a warning to the end of this chain."""
        tail = self
        while tail.next_warning is not None:
            tail = tail.next_warning
        tail.next_warning = warning

    def __iter__(self):
        warning = self
        while warning is not None:
            yield warning
            warning = warning.next_warning


class Error(Exception):
    """Parent of every failure; catch this to handle any driver or server error."""


class InterfaceError(Error):
    """The driver was misused, independent of what the server said."""


class DatabaseError(Error):
    """
    The server rejected or failed a request. Unknown SQLSTATE codes surface as
    this class directly.
    """


class DataError(DatabaseError):
    """A value could not be stored or computed (SQLSTATE class 22)."""


class OperationalError(DatabaseError):
    """
    The session or server failed independently of the SQL text, for example a
    lost link or a write on a read-only connection.
    """


class IntegrityError(DatabaseError):
    """A key or constraint check failed (class 23)."""


class InternalError(DatabaseError):
    """The server reported an inconsistency in its own state."""


class ProgrammingError(DatabaseError):
    """
    The request itself was wrong, such as invalid SQL or an unknown catalog.
    """


class NotSupportedError(DatabaseError):
    """The request needs a feature this driver or server does not provide."""


class IllegalStateError(InterfaceError):
    """Raised when a closed statement (or a statement whose connection is gone) is used."""

    def __init__(self, driver_error: str = "No operations allowed after statement closed", ddbc_error: str = "") -> None:
        super().__init__(driver_error, ddbc_error, "08003")


class InvalidArgumentError(ProgrammingError):
    """Raised when a setter or flag receives a value outside its valid range."""

    def __init__(self, driver_error: str, ddbc_error: str = "") -> None:
        super().__init__(driver_error, ddbc_error, "S1009")


class LimitExceededError(InvalidArgumentError):
    """Raised when a requested size exceeds the connection's packet budget."""


class ReadOnlyViolationError(OperationalError):
    """Raised when a data-modifying statement is issued on a read-only connection."""

    def __init__(
        self,
        driver_error: str = "Connection is read-only. Queries leading to data modification are not allowed",
        ddbc_error: str = "",
    ) -> None:
        super().__init__(driver_error, ddbc_error, "S1009")


class NotAQueryError(ProgrammingError):
    """Raised when execute_query() is given a statement that produced no rows."""

    def __init__(self, driver_error: str = "Can not issue INSERT/UPDATE/DELETE with execute_query()", ddbc_error: str = "") -> None:
        super().__init__(driver_error, ddbc_error, "S1009")


class ExpectedUpdateGotRowsError(ProgrammingError):
    """Raised when execute_update() is given a statement that produced rows."""

    def __init__(self, driver_error: str = "Results returned for UPDATE ONLY.", ddbc_error: str = "") -> None:
        super().__init__(driver_error, ddbc_error, "01S03")


class BatchUpdateError(DatabaseError):
    """
    Aggregate failure of execute_batch().

    Carries the message, SQLSTATE and vendor code of the last failed entry and the
    complete list of per-entry outcomes, where failed entries hold EXECUTE_FAILED.
    """

    def __init__(self, cause: Error, update_counts: List[int]) -> None:
        super().__init__(cause.driver_error, cause.ddbc_error, cause.sqlstate, cause.vendor_code)
        self.update_counts = list(update_counts)


def truncate_error_message(error_message: str) -> str:
    """
    Strip the vendor prefix from an error message returned by the server.

    Args:
        error_message (str): The message as reported by the protocol layer.

    Returns:
        str: The message without a leading ``[vendor][component]`` tag.
    """
    message = error_message
    while message.startswith("["):
        closing = message.find("]")
        if closing == -1:
            break
        message = message[closing + 1:]
    return message.lstrip()


# Mapping SQLSTATE codes to (exception class, driver message)
sqlstate_to_exception = {
    "01000": (SQLWarning, "General warning"),
    "01004": (DataError, "String data, right-truncated"),
    "01S03": (ExpectedUpdateGotRowsError, "No rows updated or deleted"),
    "07001": (ProgrammingError, "Wrong number of parameters"),
    "08001": (OperationalError, "Client unable to establish connection"),
    "08003": (OperationalError, "Connection not open"),
    "08S01": (OperationalError, "Communication link failure"),
    "21S01": (ProgrammingError, "Insert value list does not match column list"),
    "22001": (DataError, "String data, right-truncated"),
    "22003": (DataError, "Numeric value out of range"),
    "22007": (DataError, "Invalid datetime format"),
    "22012": (DataError, "Division by zero"),
    "23000": (IntegrityError, "Integrity constraint violation"),
    "25000": (OperationalError, "Invalid transaction state"),
    "28000": (OperationalError, "Invalid authorization specification"),
    "3D000": (ProgrammingError, "Invalid catalog name"),
    "40001": (OperationalError, "Serialization failure"),
    "42000": (ProgrammingError, "Syntax error or access violation"),
    "42S01": (ProgrammingError, "Base table or view already exists"),
    "42S02": (ProgrammingError, "Base table or view not found"),
    "42S22": (ProgrammingError, "Column not found"),
    "HY000": (OperationalError, "General error"),
    "HYT00": (OperationalError, "Timeout expired"),
    "IM001": (NotSupportedError, "Driver does not support this function"),
    "S1000": (OperationalError, "General error"),
    "S1009": (ProgrammingError, "Invalid argument value"),
}


def sqlstate_exception(sqlstate: str, ddbc_error: str = "", vendor_code: int = 0) -> Exception:
    """
    Build the exception matching the given SQLSTATE code.

    Args:
        sqlstate (str): The SQLSTATE code to map to a custom exception.
        ddbc_error (str): The underlying error message.
        vendor_code (int): The server-specific error number.

    Returns:
        Exception: An instance ready to be raised. Unknown codes map to DatabaseError.
    """
    if sqlstate in sqlstate_to_exception:
        exc_class, driver_error = sqlstate_to_exception[sqlstate]
        if exc_class is SQLWarning:
            return SQLWarning(ddbc_error or driver_error, sqlstate, vendor_code)
        if exc_class is ExpectedUpdateGotRowsError:
            return ExpectedUpdateGotRowsError(driver_error, ddbc_error)
        return exc_class(driver_error, ddbc_error, sqlstate, vendor_code)
    return DatabaseError(
        f"An error occurred with SQLSTATE code: {sqlstate}", ddbc_error, sqlstate, vendor_code
    )


def raise_exception(sqlstate: str, ddbc_error: str = "", vendor_code: int = 0) -> None:
    """
    Raise a custom exception based on the given SQLSTATE code.

    Args:
        sqlstate (str): The SQLSTATE code to map to a custom exception.
        ddbc_error (str): The underlying error message.
        vendor_code (int): The server-specific error number.

    Raises:
        DatabaseError: The mapped exception, or a generic DatabaseError for unknown codes.
    """
    raise sqlstate_exception(sqlstate, ddbc_error, vendor_code)
