"""
This file contains fixtures for the tests in the mysql_stmt package.
Classes:
- FakeProtocol: In-memory server session recording every command it receives.
Functions:
- protocol: Fixture to create a fresh FakeProtocol.
- db_connection: Fixture to create and yield a connection on catalog "a".
- statement: Fixture to create and yield a statement from the connection.
- cursor: Fixture to create and yield a cursor from the connection.
"""

import re

import pytest

from mysql_stmt import connect
from mysql_stmt.exceptions import raise_exception
from mysql_stmt.result import ResultSet

_LIMIT_RE = re.compile(r"\bLIMIT\s+(\d+)", re.IGNORECASE)


class FakeProtocol:
    """
    Minimal stand-in for a server session.

    SELECT/SHOW return ``table_rows`` rows of a single ``id`` column, capped by
    the session row limit and by a literal LIMIT clause. UPDATE/DELETE report
    ``affected_rows``; INSERT reports one row and a fresh generated key.
    Anything else is a syntax error (SQLSTATE 42000).

    ``responses`` maps exact SQL text to a callable producing the ResultSet
    (or raising) for that text, for the cases the rules above do not cover.
    """

    def __init__(self, table_rows=10, affected_rows=3):
        self.table_rows = table_rows
        self.affected_rows = affected_rows
        self.commands = []
        self.calls = []
        self.databases = []
        self.current_database = ""
        self.select_limit = None
        self.insert_id = 0
        self.responses = {}
        self.warnings = None
        self.fail_select_database = False
        self.closed = False

    def select_database(self, name):
        if self.fail_select_database:
            raise_exception("3D000", f"[MySQL][Server] Unknown database '{name}'", 1049)
        self.databases.append(name)
        self.current_database = name

    def send_query(self, sql, max_rows, streaming):
        self.commands.append(sql)
        self.calls.append(
            {
                "sql": sql,
                "max_rows": max_rows,
                "streaming": streaming,
                "database": self.current_database,
            }
        )
        if sql in self.responses:
            return self.responses[sql]()

        upper = sql.strip().upper()
        if upper.startswith("SET OPTION SQL_SELECT_LIMIT="):
            value = upper.split("=", 1)[1].strip()
            self.select_limit = None if value == "DEFAULT" else int(value)
            return ResultSet(update_count=0)
        if upper.startswith("SET ") or upper in ("COMMIT", "ROLLBACK"):
            return ResultSet(update_count=0)
        if upper.startswith(("SELECT", "SHOW")):
            rows = [[i] for i in range(1, self.table_rows + 1)]
            if self.select_limit is not None:
                rows = rows[:self.select_limit]
            match = _LIMIT_RE.search(sql)
            if match:
                rows = rows[:int(match.group(1))]
            return ResultSet(columns=["id"], rows=rows, warnings=self.warnings)
        if upper.startswith(("UPDATE", "DELETE")):
            return ResultSet(update_count=self.affected_rows, warnings=self.warnings)
        if upper.startswith("INSERT"):
            self.insert_id += 1
            return ResultSet(update_count=1, update_id=self.insert_id, warnings=self.warnings)
        if upper.startswith(("CREATE", "DROP", "CALL")):
            return ResultSet(update_count=0)
        raise_exception(
            "42000",
            f"[MySQL][Server] You have an error in your SQL syntax near '{sql}'",
            1064,
        )

    def close(self):
        self.closed = True


@pytest.fixture
def protocol():
    return FakeProtocol()


@pytest.fixture
def db_connection(protocol):
    conn = connect(protocol, catalog="a")
    yield conn
    conn.close()


@pytest.fixture
def statement(db_connection):
    stmt = db_connection.create_statement()
    yield stmt
    stmt.close()


@pytest.fixture
def cursor(db_connection):
    cursor = db_connection.cursor()
    yield cursor
    if not cursor.closed:
        cursor.close()
