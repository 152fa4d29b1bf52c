"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module provides helper functions for the mysql_stmt package.
"""

import threading
from typing import Optional

from mysql_stmt.constants import (
    DEFAULT_MAX_ALLOWED_PACKET,
    SELECT_LIMIT_DEFAULT,
    SELECT_LIMIT_TEMPLATE,
)
from mysql_stmt.logging import logger


def log(level: str, message: str, *args) -> None:
    """
    Universal logging helper.

    Args:
        level: Log level ('debug', 'info', 'warning', 'error')
        message: Log message with optional format placeholders
        *args: Arguments for message formatting
    """
    getattr(logger, level)(message, *args)


def sanitize_user_input(user_input: str, max_length: int = 50) -> str:
    """
    Shorten user-provided text (usually SQL) before it is written to a log.

    Args:
        user_input (str): The text to sanitize.
        max_length (int): Longest text kept before truncation.

    Returns:
        str: The text on a single line, truncated with "..." when too long.
    """
    if user_input is None:
        return "None"
    text = " ".join(str(user_input).split())
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


def first_non_whitespace_char(sql: Optional[str]) -> str:
    """
    Return the first non-whitespace character of a statement, or "" if there is none.
    """
    if not sql:
        return ""
    for char in sql:
        if not char.isspace():
            return char
    return ""


def is_select_statement(sql: Optional[str]) -> bool:
    """
    Classify a statement as a query.

    This is a heuristic, not a parser: a statement is a query when its first
    non-whitespace character is 'S' or 's'. Row-limit governance and the
    read-only check both rely on exactly this rule.
    """
    return first_non_whitespace_char(sql) in ("S", "s")


def has_limit_clause(sql: str) -> bool:
    """Case-insensitive substring check for a LIMIT clause."""
    return "LIMIT" in sql.upper()


def select_limit_directive(max_rows: int) -> str:
    """
    Build the session-level row limit command for the given internal max_rows.

    Non-positive values (unlimited) reset the limit to DEFAULT.
    """
    if max_rows <= 0:
        return SELECT_LIMIT_DEFAULT
    return SELECT_LIMIT_TEMPLATE.format(max_rows)


class Settings:
    """
    Settings class for mysql_stmt package configuration.

    Holds process-wide settings that affect the behavior of the package.
    """

    def __init__(self) -> None:
        self.lowercase: bool = False
        self.default_max_allowed_packet: int = DEFAULT_MAX_ALLOWED_PACKET


# Global settings instance
_settings: Settings = Settings()
_settings_lock: threading.Lock = threading.Lock()


def get_settings() -> Settings:
    """Return the global settings object"""
    with _settings_lock:
        return _settings
