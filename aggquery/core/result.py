"""
Result extraction for aggregate queries

An executed query is interpreted as one of three outcomes:

- Scalar: a single aggregate value (no grouping)
- RowSet: one row per group, carrying the group columns and the aggregates
- Absent: the query was not an aggregate/count query

Example:
    >>> outcome = extract(q)
    >>> if isinstance(outcome, Scalar):
    ...     print(outcome.value)
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Dict, List, Union

import pandas as pd
import structlog

from aggquery.core.request import AggregateFunction, AggregateRequest, ArithmeticOperator
from aggquery.interceptors.aggregate import validate_aggregate_fields

if TYPE_CHECKING:
    from aggquery.core.engine import RowQuery

logger = structlog.get_logger(__name__)

# Functions whose result over integer columns is itself an integer
INTEGER_RESULT_FUNCTIONS = frozenset(
    {AggregateFunction.SUM, AggregateFunction.MAX, AggregateFunction.MIN}
)


@dataclass(frozen=True)
class Scalar:
    """A single aggregate value"""

    value: Any

    def __repr__(self) -> str:
        return f"Scalar({self.value!r})"


@dataclass(frozen=True)
class RowSet:
    """Grouped aggregate rows"""

    rows: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def value(self) -> List[Dict[str, Any]]:
        return self.rows

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert rows to a pandas DataFrame"""
        return pd.DataFrame(self.rows)

    def __repr__(self) -> str:
        return f"RowSet({len(self.rows)} rows)"


@dataclass(frozen=True)
class Absent:
    """No aggregate result; read the query's items instead"""

    @property
    def value(self) -> None:
        return None

    def __repr__(self) -> str:
        return "Absent"


ABSENT = Absent()

ExecutionOutcome = Union[Scalar, RowSet, Absent]


def absint(value: Any) -> int:
    """
    Coerce a value to a non-negative integer

    Examples:
        >>> absint(-12)
        12
        >>> absint(Decimal("7.9"))
        7
        >>> absint(None)
        0
    """
    if value is None or isinstance(value, bool):
        return int(bool(value))
    try:
        return abs(int(value))
    except (TypeError, ValueError):
        pass
    try:
        return abs(int(Decimal(str(value).strip())))
    except (InvalidOperation, ValueError):
        return 0


def is_integer_result(query: "RowQuery", fields: List[str]) -> bool:
    """
    Check if the count path already holds the aggregate as an integer

    True when every field is an integer column and the aggregate over
    integers stays an integer: SUM/MIN/MAX without division.
    """
    request = AggregateRequest.from_query_vars(query.query_vars)
    if request is None:
        return False

    if request.function not in INTEGER_RESULT_FUNCTIONS:
        return False
    if request.operator is ArithmeticOperator.DIVIDE and len(fields) > 1:
        return False

    return all(query.catalog.is_column_integer(name) for name in fields)


def extract(query: "RowQuery") -> ExecutionOutcome:
    """
    Interpret an executed query as an aggregate outcome

    Args:
        query: Query after execution

    Returns:
        Scalar, RowSet or ABSENT
    """
    if not query.is_count() or query.clauses is None:
        return ABSENT

    if query.clauses.groupby:
        logger.debug("aggregate_result", table=query.table, path="rowset", rows=len(query.items))
        return RowSet(list(query.items))

    aggregate_fields = query.query_vars.get("aggregate_fields") or []
    fields = validate_aggregate_fields(aggregate_fields, query.catalog)

    if fields and is_integer_result(query, fields):
        logger.debug("aggregate_result", table=query.table, path="integer")
        return Scalar(absint(query.found_items))

    logger.debug("aggregate_result", table=query.table, path="scalar")
    return Scalar(query.db.get_var(query.request))
