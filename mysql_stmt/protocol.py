"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module defines the interface between a Connection and the wire protocol
implementation that actually talks to the server.
"""
from typing import Protocol, runtime_checkable

from mysql_stmt.result import ResultSet


@runtime_checkable
class ServerProtocol(Protocol):
    """
    The wire layer a Connection dispatches to.

    Implementations encode the request, perform the network round trip and
    decode the response into a ResultSet. Server-side failures are reported by
    raising the matching mysql_stmt exception (see exceptions.raise_exception).
    A Connection serializes every call behind its mutex, so implementations
    need not be thread-safe.
    """

    def send_query(self, sql: str, max_rows: int, streaming: bool) -> ResultSet:
        """Execute ``sql`` and return the decoded response."""
        ...

    def select_database(self, name: str) -> None:
        """Make ``name`` the session's default catalog."""
        ...

    def close(self) -> None:
        """Close the underlying session."""
        ...
