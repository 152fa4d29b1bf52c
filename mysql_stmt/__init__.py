"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module initializes the mysql_stmt package.
"""

import sys
import types

# Driver-wide settings
from .helpers import Settings, get_settings, _settings, _settings_lock

# Package version
__version__ = "0.3.0"

# Exceptions
# DB-API error hierarchy plus statement-level errors
from .exceptions import (
    Warning,
    SQLWarning,
    Error,
    InterfaceError,
    DatabaseError,
    DataError,
    OperationalError,
    IntegrityError,
    InternalError,
    ProgrammingError,
    NotSupportedError,
    IllegalStateError,
    InvalidArgumentError,
    LimitExceededError,
    ReadOnlyViolationError,
    NotAQueryError,
    ExpectedUpdateGotRowsError,
    BatchUpdateError,
)

# Constants
from .constants import (
    MAX_ROWS,
    STREAMING_FETCH_SIZE,
    EXECUTE_FAILED,
    UNKNOWN_INSERT_ID,
    FetchDirection,
    ResultSetType,
    ResultSetConcurrency,
    ResultSetHoldability,
    MoreResults,
    AutoGeneratedKeys,
)

# Collaborators
from .escape import EscapeProcessor
from .protocol import ServerProtocol
from .result import ResultSet
from .row import Row

# Statement, Cursor and Connection Objects
from .statement import Statement
from .cursor import Cursor
from .connection import Connection
from .db_connection import connect

# Logging Configuration
from .logging import logger, setup_logging

# DB-API module globals
apilevel: str = "2.0"
paramstyle: str = "qmark"
threadsafety: int = 1


class _MySQLStmtModule(types.ModuleType):
    """Module type that validates writes to driver-wide settings."""

    @property
    def lowercase(self) -> bool:
        """Whether Row attribute lookup ignores column-name case."""
        return _settings.lowercase

    @lowercase.setter
    def lowercase(self, value: bool) -> None:
        if not isinstance(value, bool):
            raise ValueError("lowercase must be a boolean value")
        with _settings_lock:
            _settings.lowercase = value


sys.modules[__name__].__class__ = _MySQLStmtModule
