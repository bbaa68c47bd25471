"""
Query builder: accumulates clauses and renders a single SQL SELECT string.

``query(schema)`` returns a ``QueryBuilder`` that owns one ``QueryState``.
Every mutating method changes that state in place and returns the *same*
builder, so chains like ``query(s).select("a").from_("t")`` and
``q.where(...); q.build()`` behave identically.  Use ``clone()`` when an
independent copy is needed.  A builder must not be mutated from two threads
at once.

Rendering order is fixed:

  WITH  →  SELECT  →  FROM  →  JOIN*  →  WHERE  →  GROUP BY  →  HAVING
        →  ORDER BY  →  LIMIT  →  OFFSET  →  (set operation, other query)*

A builder combined with itself (directly or through a chain of unions) will
recurse forever at ``build()``; callers must not create such cycles.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Literal, Mapping, Union

from src.query.escaping import escape
from src.query.functions import Comparison
from src.core.logging import get_logger

logger = get_logger(__name__)

SetOperator = Literal["UNION ALL", "UNION", "INTERSECT", "EXCEPT"]
Direction = Literal["ASC", "DESC"]
JoinType = Literal["INNER", "LEFT", "RIGHT", "FULL", "CROSS", "LEFT OUTER", "RIGHT OUTER", "FULL OUTER"]


# ── Conditions ───────────────────────────────────────────

@dataclass(frozen=True)
class RawCondition:
    """A condition given verbatim by the caller."""
    text: str

    def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class ColumnCondition:
    """``column op value`` with the value escaped at render time."""
    column: str
    op: str
    value: Any

    def render(self) -> str:
        return f"{self.column} {self.op} {escape(self.value)}"


Condition = Union[RawCondition, ColumnCondition]


@dataclass(frozen=True)
class Predicate:
    condition: Condition
    connective: str | None = None  # AND | OR | None

    def render(self) -> str:
        text = self.condition.render()
        return f"{self.connective} {text}" if self.connective else text


# ── State ────────────────────────────────────────────────

@dataclass
class QueryState:
    schema: Any = None
    projections: list[str] = field(default_factory=list)
    source: str | None = None
    joins: list[str] = field(default_factory=list)
    predicates: list[Predicate] = field(default_factory=list)
    group_by: list[str] = field(default_factory=list)
    having: list[str] = field(default_factory=list)
    order_by: list[str] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None
    set_operations: list[tuple["QueryBuilder", str]] = field(default_factory=list)
    ctes: list[tuple[str, str]] = field(default_factory=list)
    raw_sql: str | None = None


# ── Subquery conditions ──────────────────────────────────

def exists_subquery(subquery: "QueryBuilder") -> str:
    return f"EXISTS ({subquery.build()})"


def not_exists_subquery(subquery: "QueryBuilder") -> str:
    return f"NOT EXISTS ({subquery.build()})"


def in_subquery(column: str, subquery: "QueryBuilder") -> str:
    return f"{column} IN ({subquery.build()})"


def not_in_subquery(column: str, subquery: "QueryBuilder") -> str:
    return f"{column} NOT IN ({subquery.build()})"


# ── Builder ──────────────────────────────────────────────

ConditionInput = Union[str, Condition, Callable[[Any], str]]
OperatorInput = Union[Comparison, Mapping[str, Any]]


class QueryBuilder:
    """Fluent SELECT builder over a single owned ``QueryState``."""

    def __init__(self, schema: Any = None, state: QueryState | None = None):
        self._state = state if state is not None else QueryState(schema=schema)

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def schema(self) -> Any:
        return self._state.schema

    # ── Projection / source ──────────────────────────

    def select(self, *columns: str) -> QueryBuilder:
        self._state.projections.extend(str(c) for c in columns)
        return self

    def select_raw(self, sql: str) -> QueryBuilder:
        self._state.projections.append(sql)
        return self

    def from_(self, table: str) -> QueryBuilder:
        self._state.source = table
        return self

    def subquery(self, alias: str, other: QueryBuilder) -> QueryBuilder:
        """Use ``(other) AS alias`` as the FROM target."""
        self._state.source = f"({other.build()}) AS {alias}"
        return self

    def join(self, table: str, condition: str, join_type: JoinType | str = "INNER") -> QueryBuilder:
        self._state.joins.append(f"{join_type} JOIN {table} ON {condition}")
        return self

    # ── Filtering ────────────────────────────────────

    def _condition(self, condition: ConditionInput, operator: OperatorInput | None) -> Condition:
        if operator is None:
            if isinstance(condition, (RawCondition, ColumnCondition)):
                return condition
            if callable(condition):
                condition = condition(self._state.schema)
            return RawCondition(str(condition))
        if isinstance(operator, Comparison):
            return ColumnCondition(str(condition), operator.op, operator.value)
        if isinstance(operator, Mapping):
            return ColumnCondition(str(condition), operator["op"], operator["value"])
        raise TypeError(
            f"Operator must be a Comparison or a mapping with 'op' and 'value', "
            f"got {type(operator).__name__}"
        )

    def _add_predicate(self, condition: Condition, connective: str | None) -> QueryBuilder:
        if not self._state.predicates:
            connective = None
        self._state.predicates.append(Predicate(condition, connective))
        return self

    def where(self, condition: ConditionInput, operator: OperatorInput | None = None) -> QueryBuilder:
        """Add a condition with no connective.

        Calling ``where`` again on a non-empty filter does NOT insert ``AND``;
        combine conditions with ``and_`` / ``or_``.
        """
        return self._add_predicate(self._condition(condition, operator), None)

    def and_(self, condition: ConditionInput, operator: OperatorInput | None = None) -> QueryBuilder:
        return self._add_predicate(self._condition(condition, operator), "AND")

    def or_(self, condition: ConditionInput, operator: OperatorInput | None = None) -> QueryBuilder:
        return self._add_predicate(self._condition(condition, operator), "OR")

    def exists_subquery(self, subquery: QueryBuilder) -> str:
        return exists_subquery(subquery)

    def not_exists_subquery(self, subquery: QueryBuilder) -> str:
        return not_exists_subquery(subquery)

    def in_subquery(self, column: str, subquery: QueryBuilder) -> str:
        return in_subquery(column, subquery)

    def not_in_subquery(self, column: str, subquery: QueryBuilder) -> str:
        return not_in_subquery(column, subquery)

    # ── Aggregation / ordering / paging ──────────────

    def group_by(self, *columns: str) -> QueryBuilder:
        self._state.group_by.extend(str(c) for c in columns)
        return self

    def having(self, condition: str) -> QueryBuilder:
        self._state.having.append(condition)
        return self

    def order_by(self, column: str, direction: Direction = "ASC") -> QueryBuilder:
        """Append one ``column DIRECTION`` term; repeated calls add more terms."""
        self._state.order_by.append(f"{column} {direction}")
        return self

    def limit(self, n: int) -> QueryBuilder:
        self._state.limit = n
        return self

    def offset(self, n: int) -> QueryBuilder:
        self._state.offset = n
        return self

    # ── Composition ──────────────────────────────────

    def union(self, other: QueryBuilder, set_operator: SetOperator | str = "UNION ALL") -> QueryBuilder:
        self._state.set_operations.append((other, set_operator))
        return self

    def union_all(self, other: QueryBuilder) -> QueryBuilder:
        return self.union(other, "UNION ALL")

    def union_distinct(self, other: QueryBuilder) -> QueryBuilder:
        return self.union(other, "UNION")

    def intersect(self, other: QueryBuilder) -> QueryBuilder:
        return self.union(other, "INTERSECT")

    def except_(self, other: QueryBuilder) -> QueryBuilder:
        return self.union(other, "EXCEPT")

    def with_(self, alias: str, source: QueryBuilder | str) -> QueryBuilder:
        """Register a CTE rendered as ``alias AS (sql)`` ahead of the main query."""
        sql = source.build() if isinstance(source, QueryBuilder) else source
        self._state.ctes.append((alias, sql))
        return self

    def if_(self, condition: Any, fn: Callable[[QueryBuilder], Any]) -> QueryBuilder:
        if condition:
            fn(self)
        return self

    def raw(self, sql: str) -> QueryBuilder:
        """Replace the whole query with *sql*; all other clauses are ignored."""
        self._state.raw_sql = sql
        return self

    def clone(self) -> QueryBuilder:
        """Independent copy of this builder; nested builders are shared."""
        state = self._state
        copied = {
            f.name: list(getattr(state, f.name))
            for f in fields(state)
            if isinstance(getattr(state, f.name), list)
        }
        return QueryBuilder(state=replace(state, **copied))

    # ── Rendering ────────────────────────────────────

    def build(self) -> str:
        state = self._state
        if state.raw_sql is not None:
            return state.raw_sql

        parts: list[str] = []

        if state.ctes:
            parts.append("WITH " + ",\n".join(f"{alias} AS ({sql})" for alias, sql in state.ctes))

        if state.projections:
            parts.append(f"SELECT {', '.join(state.projections)}")
        else:
            parts.append("SELECT *")

        if state.source:
            parts.append(f"FROM {state.source}")

        parts.extend(state.joins)

        if state.predicates:
            parts.append("WHERE " + " ".join(p.render() for p in state.predicates))

        if state.group_by:
            parts.append(f"GROUP BY {', '.join(state.group_by)}")

        if state.having:
            parts.append(f"HAVING {' AND '.join(state.having)}")

        if state.order_by:
            parts.append(f"ORDER BY {', '.join(state.order_by)}")

        if state.limit is not None:
            parts.append(f"LIMIT {state.limit}")

        if state.offset is not None:
            parts.append(f"OFFSET {state.offset}")

        sql = "\n".join(parts)

        for other, set_operator in state.set_operations:
            sql += f"\n{set_operator}\n{other.build()}"

        logger.debug("Built SQL:\n%s", sql)
        return sql

    def __str__(self) -> str:
        return self.build()


def query(schema: Any = None) -> QueryBuilder:
    """Start a new query over *schema* (an ordered ``{name: Column}`` map)."""
    return QueryBuilder(schema)
