"""
Window-function helpers.

Each helper returns the SQL text of a single window expression, e.g.::

    row_number("department", "salary DESC")
    -> ROW_NUMBER() OVER (PARTITION BY department ORDER BY salary DESC)
"""
from __future__ import annotations

from typing import Any


def _over(partition_by: str | None, order_by: str | None) -> str:
    parts: list[str] = []
    if partition_by:
        parts.append(f"PARTITION BY {partition_by}")
    if order_by:
        parts.append(f"ORDER BY {order_by}")
    return f"OVER ({' '.join(parts)})"


def _window(func: str, args: list[str], partition_by: str | None, order_by: str | None) -> str:
    return f"{func}({', '.join(args)}) {_over(partition_by, order_by)}"


def row_number(partition_by: str | None = None, order_by: str | None = None) -> str:
    return _window("ROW_NUMBER", [], partition_by, order_by)


def rank(partition_by: str | None = None, order_by: str | None = None) -> str:
    return _window("RANK", [], partition_by, order_by)


def dense_rank(partition_by: str | None = None, order_by: str | None = None) -> str:
    return _window("DENSE_RANK", [], partition_by, order_by)


def _offset_args(column: str, offset: int, default: Any) -> list[str]:
    args = [column]
    if offset != 1:
        args.append(str(offset))
    if default is not None:
        args.append(str(default))
    return args


def lag(
    column: str,
    offset: int = 1,
    default: Any = None,
    partition_by: str | None = None,
    order_by: str | None = None,
) -> str:
    """Value of *column* ``offset`` rows before the current one.

    An offset of 1 is always left out of the argument list, even when
    *default* is given: ``lag("x", 1, 0)`` renders ``LAG(x, 0)``, which the
    database reads as offset 0.  Pass the default with an offset other than 1
    if both must appear.
    """
    return _window("LAG", _offset_args(column, offset, default), partition_by, order_by)


def lead(
    column: str,
    offset: int = 1,
    default: Any = None,
    partition_by: str | None = None,
    order_by: str | None = None,
) -> str:
    """Value of *column* ``offset`` rows after the current one.

    Same argument rules as :func:`lag`.
    """
    return _window("LEAD", _offset_args(column, offset, default), partition_by, order_by)


def first_value(column: str, partition_by: str | None = None, order_by: str | None = None) -> str:
    return _window("FIRST_VALUE", [column], partition_by, order_by)


def last_value(column: str, partition_by: str | None = None, order_by: str | None = None) -> str:
    return _window("LAST_VALUE", [column], partition_by, order_by)
