"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the EscapeProcessor class, which rewrites JDBC/ODBC style
escape sequences ({d ...}, {fn ...}, {oj ...}, ...) into native SQL text.
"""

import re
from typing import Tuple

from mysql_stmt.helpers import log, sanitize_user_input

_QUOTES = ("'", '"', "`")

# Keyword at the start of an escape body, followed by whitespace or end of text
_KEYWORD_RE = re.compile(r"^\s*(\?\s*=\s*call|ts|fn|oj|call|escape|d|t)(?=\s|$)", re.IGNORECASE)


class EscapeProcessor:
    """
    Rewrites escape sequences in SQL text.

    Quoted literals and identifiers are copied verbatim; braces that do not
    introduce a known escape are left untouched. The processor holds no state
    between calls.
    """

    def rewrite(self, sql: str) -> str:
        """
        Rewrite every escape sequence in ``sql``.

        Args:
            sql: The statement text.

        Returns:
            The statement with escapes replaced by native syntax. Text without
            any '{' is returned unchanged.
        """
        if sql is None or "{" not in sql:
            return sql
        rewritten, _, _ = self._rewrite_from(sql, 0, nested=False)
        if rewritten != sql:
            log('debug', "Escape processing rewrote statement to: %s", sanitize_user_input(rewritten, 200))
        return rewritten

    def _rewrite_from(self, sql: str, pos: int, nested: bool) -> Tuple[str, int, bool]:
        out = []
        length = len(sql)
        while pos < length:
            char = sql[pos]
            if char in _QUOTES:
                end = self._skip_quoted(sql, pos)
                out.append(sql[pos:end])
                pos = end
            elif char == "{":
                body, pos, terminated = self._rewrite_from(sql, pos + 1, nested=True)
                # Unterminated escapes keep their opening brace
                out.append(self._translate(body) if terminated else "{" + body)
            elif char == "}" and nested:
                return "".join(out), pos + 1, True
            else:
                out.append(char)
                pos += 1
        return "".join(out), pos, not nested

    @staticmethod
    def _skip_quoted(sql: str, pos: int) -> int:
        quote = sql[pos]
        pos += 1
        length = len(sql)
        while pos < length:
            char = sql[pos]
            if char == "\\":
                pos += 2
                continue
            if char == quote:
                if pos + 1 < length and sql[pos + 1] == quote:
                    pos += 2
                    continue
                return pos + 1
            pos += 1
        return length

    @staticmethod
    def _translate(body: str) -> str:
        match = _KEYWORD_RE.match(body)
        if not match:
            return "{" + body + "}"
        keyword = match.group(1).lower()
        rest = body[match.end():].strip()
        if keyword in ("d", "t", "ts"):
            return rest
        if keyword in ("fn", "oj"):
            return rest
        if keyword == "escape":
            return f"ESCAPE {rest}"
        # call and "? = call"
        return f"CALL {rest}"
