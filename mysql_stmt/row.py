"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the Row class returned by ResultSet fetches.
"""
from typing import Any, Dict, Iterator, Sequence

from mysql_stmt.helpers import get_settings


class Row:
    """
    One fetched row. Values are reachable by position (``row[0]``) or by
    column name (``row.id``). With ``mysql_stmt.lowercase`` enabled, name
    lookup ignores case.
    """

    __slots__ = ("_values", "_column_map")

    def __init__(self, values: Sequence[Any], column_map: Dict[str, int]) -> None:
        """
        Args:
            values: Column values in select-list order.
            column_map: Column name to position, shared by every row of a result.
        """
        self._values = list(values)
        self._column_map = column_map

    def __getitem__(self, index: int) -> Any:
        return self._values[index]

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)

        position = self._column_map.get(name)
        if position is None and get_settings().lowercase:
            wanted = name.lower()
            position = next(
                (i for column, i in self._column_map.items() if column.lower() == wanted),
                None,
            )
        if position is None:
            raise AttributeError(f"Row has no column named '{name}'")
        return self._values[position]

    def __eq__(self, other: Any) -> bool:
        """Rows compare by value with other rows, lists and tuples."""
        if isinstance(other, Row):
            other = other._values
        elif isinstance(other, tuple):
            other = list(other)
        elif not isinstance(other, list):
            return NotImplemented
        return self._values == other

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values)

    def __str__(self) -> str:
        return "(" + ", ".join(map(repr, self._values)) + ")"

    def __repr__(self) -> str:
        return repr(tuple(self._values))
