"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module provides a way to create a new connection object to interact with the database.
"""

from typing import Optional

from mysql_stmt.connection import Connection
from mysql_stmt.protocol import ServerProtocol


def connect(
    protocol: ServerProtocol,
    catalog: str = "",
    autocommit: bool = True,
    read_only: bool = False,
    max_allowed_packet: Optional[int] = None,
) -> Connection:
    """
    Constructor for creating a connection to the database.

    Args:
        protocol: An established wire-protocol session.
        catalog (str): Initial catalog to select.
        autocommit (bool): Autocommit mode reported by the session.
        read_only (bool): Reject data-modifying statements.
        max_allowed_packet (int): Largest packet the server accepts.

    Returns:
        Connection: A new connection object to interact with the database.

    Raises:
        InterfaceError: If the protocol object is unusable.

    Example:
        conn = connect(session, catalog="inventory", autocommit=False)
        with conn.create_statement() as stmt:
            rows = stmt.execute_query("SELECT id FROM items").fetchall()
    """
    return Connection(
        protocol,
        catalog=catalog,
        autocommit=autocommit,
        read_only=read_only,
        max_allowed_packet=max_allowed_packet,
    )
