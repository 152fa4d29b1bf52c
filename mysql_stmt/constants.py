"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the constants used by the statement layer.
"""

from enum import IntEnum

# Largest value accepted by Statement.max_rows
MAX_ROWS = 50000000

# Internal marker for "no row limit"; externally reported as 0
NO_ROW_LIMIT = -1

# fetch_size value that requests a streaming (row-by-row) result
STREAMING_FETCH_SIZE = -(2 ** 31)

# Per-entry outcome recorded by execute_batch() for a failed statement
EXECUTE_FAILED = -3

# last_insert_id before any statement reported a generated key
UNKNOWN_INSERT_ID = -1

# Update counts are reported as 32-bit values; long_update_count keeps the full value
MAX_UPDATE_COUNT = 2 ** 31 - 1

# Default maximum packet size when the connection does not advertise one (1 MiB)
DEFAULT_MAX_ALLOWED_PACKET = 1024 * 1024

SELECT_LIMIT_DEFAULT = "SET OPTION SQL_SELECT_LIMIT=DEFAULT"
SELECT_LIMIT_TEMPLATE = "SET OPTION SQL_SELECT_LIMIT={}"


class FetchDirection(IntEnum):
    """Hint for the order in which rows will be processed."""
    FORWARD = 1000
    REVERSE = 1001
    UNKNOWN = 1002


class ResultSetType(IntEnum):
    """Scrollability of results produced by a statement."""
    FORWARD_ONLY = 1003
    SCROLL_INSENSITIVE = 1004
    SCROLL_SENSITIVE = 1005


class ResultSetConcurrency(IntEnum):
    """Whether results produced by a statement may be updated."""
    READ_ONLY = 1007
    UPDATABLE = 1008


class ResultSetHoldability(IntEnum):
    """Whether results stay open across commit."""
    HOLD_CURSORS_OVER_COMMIT = 1
    CLOSE_CURSORS_AT_COMMIT = 2


class MoreResults(IntEnum):
    """What get_more_results() does with the current result before advancing."""
    CLOSE_CURRENT = 1
    KEEP_CURRENT = 2
    CLOSE_ALL = 3


class AutoGeneratedKeys(IntEnum):
    """Flags accepted (and ignored) by the execute overloads."""
    RETURN_GENERATED_KEYS = 1
    NO_GENERATED_KEYS = 2

