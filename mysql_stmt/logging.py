"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.

Driver-wide logging for mysql_stmt.

Nothing is written until setup_logging() is called; before that every call
returns after one level check. Records carry the trace id of the connection or
statement that produced them, and credentials are masked before formatting.
"""

import contextvars
import datetime
import itertools
import logging
import os
import re
import sys
import threading
from logging.handlers import RotatingFileHandler
from typing import Optional


DEBUG = logging.DEBUG

# Output destinations accepted by setup_logging()
STDOUT = 'stdout'
FILE = 'file'
BOTH = 'both'
_OUTPUT_MODES = (FILE, STDOUT, BOTH)

_LOG_DIR_NAME = "mysql_stmt_logs"
_MAX_LOG_BYTES = 512 * 1024 * 1024
_LOG_BACKUPS = 5
_RECORD_FORMAT = '%(asctime)s [%(trace_id)s] - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
_PREFIX = "[Python] "

_REDACTIONS = [
    (re.compile(r"\b(pwd|password|token)\s*=\s*[^;,\s]+", re.IGNORECASE), r"\1=***"),
    (re.compile(r"(identified\s+by\s+)'[^']*'", re.IGNORECASE), r"\1'***'"),
]

_current_trace_id = contextvars.ContextVar('mysql_stmt_trace_id', default=None)


def _check_output_mode(mode: str) -> None:
    if mode not in _OUTPUT_MODES:
        raise ValueError(
            f"Invalid output mode: {mode}. Must be one of: {', '.join(_OUTPUT_MODES)}"
        )


def _default_log_path() -> str:
    """./mysql_stmt_logs/mysql_stmt_trace_<timestamp>_<pid>.log"""
    stamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    return os.path.join(os.getcwd(), _LOG_DIR_NAME, f"mysql_stmt_trace_{stamp}_{os.getpid()}.log")


def redact(message: str) -> str:
    """Mask passwords, tokens and IDENTIFIED BY literals in a log message."""
    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)
    return message


class TraceIDFilter(logging.Filter):
    """Stamps every record with the trace id active in the current context ('-' if none)."""

    def filter(self, record):
        record.trace_id = _current_trace_id.get() or '-'
        return True


class DriverLogger:
    """
    Process-wide logger shared by connections and statements.

    There is a single instance (``mysql_stmt.logging.logger``). It wraps the
    standard ``mysql_stmt`` logger, which does not propagate to the root logger.
    """

    _instance: Optional['DriverLogger'] = None
    _instance_lock = threading.Lock()

    def __new__(cls) -> 'DriverLogger':
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._configured = False
        return cls._instance

    def __init__(self):
        if self._configured:
            return
        self._configured = True

        self._logger = logging.getLogger('mysql_stmt')
        self._logger.setLevel(logging.CRITICAL)
        self._logger.propagate = False
        self._logger.addFilter(TraceIDFilter())

        self._trace_ids = itertools.count(1)
        self._trace_lock = threading.Lock()

        self._mode = FILE
        self._log_path: Optional[str] = None
        self._active_log_file: Optional[str] = None
        # Handlers are only built once logging is enabled
        self._handlers_ready = False

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _drop_handlers(self) -> None:
        for handler in list(self._logger.handlers):
            handler.close()
            self._logger.removeHandler(handler)

    def _open_file_handler(self, formatter: logging.Formatter) -> logging.Handler:
        path = self._log_path or _default_log_path()
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler = RotatingFileHandler(path, maxBytes=_MAX_LOG_BYTES, backupCount=_LOG_BACKUPS)
        handler.setFormatter(formatter)
        self._active_log_file = path
        return handler

    def _rebuild_handlers(self) -> None:
        self._drop_handlers()
        self._active_log_file = None
        formatter = logging.Formatter(_RECORD_FORMAT)

        if self._mode in (FILE, BOTH):
            self._logger.addHandler(self._open_file_handler(formatter))
        if self._mode in (STDOUT, BOTH):
            stream = logging.StreamHandler(sys.stdout)
            stream.setFormatter(formatter)
            self._logger.addHandler(stream)
        self._handlers_ready = True

    def _enable(self, level: int, output: Optional[str] = None, log_file_path: Optional[str] = None) -> None:
        """
        Switch logging on at ``level``. Handlers are rebuilt when the destination
        changes or when logging is enabled for the first time.

        Raises:
            ValueError: If output is not one of FILE, STDOUT or BOTH.
        """
        if output is not None:
            _check_output_mode(output)
            self._mode = output
        if log_file_path is not None:
            self._log_path = log_file_path

        if not self._handlers_ready or output is not None or log_file_path is not None:
            self._rebuild_handlers()
        self._logger.setLevel(level)

    # ------------------------------------------------------------------
    # Trace ids
    # ------------------------------------------------------------------

    def generate_trace_id(self, prefix: str = "TRACE") -> str:
        """
        Return a new id of the form PREFIX-PID-THREAD-N, e.g. ``STMT-4242-139871-7``.
        N increases across the process.
        """
        with self._trace_lock:
            number = next(self._trace_ids)
        return f"{prefix}-{os.getpid()}-{threading.get_ident()}-{number}"

    def set_trace_id(self, trace_id: str) -> contextvars.Token:
        """Make ``trace_id`` current; pass the returned token to reset_trace_id()."""
        return _current_trace_id.set(trace_id)

    def reset_trace_id(self, token: contextvars.Token) -> None:
        """Restore the trace id that was current before the matching set_trace_id()."""
        _current_trace_id.reset(token)

    def get_trace_id(self) -> Optional[str]:
        return _current_trace_id.get()

    def clear_trace_id(self) -> None:
        _current_trace_id.set(None)

    # ------------------------------------------------------------------
    # Emitting
    # ------------------------------------------------------------------

    def _emit(self, level: int, msg: str, args: tuple, kwargs: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        text = _PREFIX + (msg % args if args else msg)
        self._logger.log(level, redact(text), **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._emit(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._emit(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._emit(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._emit(logging.ERROR, msg, args, kwargs)

    def critical(self, msg: str, *args, **kwargs):
        self._emit(logging.CRITICAL, msg, args, kwargs)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def output(self) -> str:
        """Current destination: 'file', 'stdout' or 'both'."""
        return self._mode

    @property
    def log_file(self) -> Optional[str]:
        """Path of the file being written, or None when file output is off."""
        return self._active_log_file


logger = DriverLogger()


def setup_logging(output: str = FILE, log_file_path: Optional[str] = None) -> DriverLogger:
    """
    Turn on DEBUG logging for the whole driver.

    Args:
        output: 'file' (default), 'stdout' or 'both'.
        log_file_path: Where to write the file. Defaults to a timestamped file
            under ./mysql_stmt_logs/.

    Example:
        import mysql_stmt
        mysql_stmt.setup_logging(output='both', log_file_path="/tmp/driver.log")
    """
    logger._enable(logging.DEBUG, output, log_file_path)
    return logger
