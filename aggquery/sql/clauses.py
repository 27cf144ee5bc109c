"""
Clause node definitions for row queries

These dataclasses hold the generated pieces of a SELECT statement before
they are assembled into SQL text. Interceptors receive a ClauseSet and may
rewrite any of its parts.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any


def quote_identifier(name: str) -> str:
    """Double-quote an identifier, escaping embedded quotes"""
    return '"' + str(name).replace('"', '""') + '"'


def quote_literal(value: Any) -> str:
    """
    Render a Python value as a SQL literal

    Examples:
        >>> quote_literal("O'Brien")
        "'O''Brien'"
        >>> quote_literal(42)
        '42'
        >>> quote_literal(None)
        'NULL'
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return f"'{value.isoformat()}'"
    return "'" + str(value).replace("'", "''") + "'"


@dataclass
class Condition:
    """A single WHERE condition: column operator value"""

    column: str
    operator: str  # '=', 'IN', 'NOT IN'
    value: Any

    def __repr__(self) -> str:
        if self.operator in ("IN", "NOT IN"):
            values = ", ".join(quote_literal(v) for v in self.value)
            return f"{self.column} {self.operator} ({values})"
        if self.value is None:
            return f"{self.column} IS NULL"
        return f"{self.column} {self.operator} {quote_literal(self.value)}"


@dataclass
class OrderByColumn:
    """
    Represents a column in ORDER BY clause

    Examples:
        name ASC, age DESC
    """

    column: str
    direction: str = "ASC"  # 'ASC' or 'DESC', default ASC

    def __repr__(self) -> str:
        return f"{self.column} {self.direction}"


@dataclass
class ClauseSet:
    """
    The generated clauses of one row query

    ``fields`` is the projection text; ``groupby`` lists the grouping
    columns. Everything else is kept as structured values and rendered by
    build_request().

    Examples:
        fields="COUNT(*)"
        fields="product_id, COUNT(*) as count", groupby=["product_id"]
    """

    fields: str = "*"
    join: str = ""
    where: list[Condition] = field(default_factory=list)
    groupby: list[str] = field(default_factory=list)
    orderby: list[OrderByColumn] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None
    distinct: bool = False

    def copy(self) -> "ClauseSet":
        """Shallow copy with independent lists"""
        return replace(
            self,
            where=list(self.where),
            groupby=list(self.groupby),
            orderby=list(self.orderby),
        )

    def where_sql(self) -> str:
        if not self.where:
            return ""
        return "WHERE " + " AND ".join(str(c) for c in self.where)

    def limits_sql(self) -> str:
        parts = []
        if self.limit is not None:
            parts.append(f"LIMIT {int(self.limit)}")
        if self.offset:
            parts.append(f"OFFSET {int(self.offset)}")
        return " ".join(parts)


def build_request(table: str, clauses: ClauseSet) -> str:
    """
    Assemble the final SQL text for a table from its clauses

    Args:
        table: Table name (FROM clause)
        clauses: Generated and possibly intercepted clauses

    Returns:
        SQL string

    Example:
        >>> build_request("orders", ClauseSet(fields="SUM(amount) as total_amount"))
        'SELECT SUM(amount) as total_amount FROM "orders"'
    """
    select = "SELECT DISTINCT" if clauses.distinct else "SELECT"
    parts = [f"{select} {clauses.fields}", f"FROM {quote_identifier(table)}"]

    if clauses.join:
        parts.append(clauses.join)
    if clauses.where:
        parts.append(clauses.where_sql())
    if clauses.groupby:
        parts.append(f"GROUP BY {', '.join(clauses.groupby)}")
    if clauses.orderby:
        parts.append(f"ORDER BY {', '.join(str(col) for col in clauses.orderby)}")

    limits = clauses.limits_sql()
    if limits:
        parts.append(limits)

    return " ".join(parts)
