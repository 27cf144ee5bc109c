"""
Aggregate request normalization

Parses the raw aggregate parameters of a query (function, operator, fields)
into canonical form before the row-query engine sees them. Parsing is
permissive: malformed parameters degrade the request instead of raising.

Example:
    >>> normalize({"function": " sum ", "fields": ["amount", "tax", "amount"]})
    {'function': 'SUM', 'operator': '+', 'aggregate_fields': ['amount', 'tax'], 'count': True}
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog

from aggquery.config import DEFAULT_OPERATOR

logger = structlog.get_logger(__name__)


class AggregateFunction(Enum):
    """SQL aggregate functions a request may ask for"""

    SUM = "SUM"  # sum of a set of values
    AVG = "AVG"  # average of a set of values
    MAX = "MAX"
    MIN = "MIN"
    GROUP_CONCAT = "GROUP_CONCAT"  # values from many rows joined into one string
    STDDEV = "STDDEV"  # standard deviation
    VAR_SAMP = "VAR_SAMP"  # sample variance
    VAR_POP = "VAR_POP"  # population variance

    def __str__(self) -> str:
        return self.value


class ArithmeticOperator(Enum):
    """Operators allowed between fields combined into one aggregate"""

    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"

    def __str__(self) -> str:
        return self.value


AGGREGATE_FUNCTIONS = frozenset(f.value for f in AggregateFunction)
AGGREGATE_OPERATORS = frozenset(op.value for op in ArithmeticOperator)


def sanitize_aggregate_function(function: Any) -> str:
    """Trim whitespace and uppercase an aggregate function name"""
    if not isinstance(function, str):
        return ""
    return function.strip().upper()


def is_valid_aggregate_function(function: Any) -> bool:
    """Check if a value names one of the supported aggregate functions"""
    return sanitize_aggregate_function(function) in AGGREGATE_FUNCTIONS


def sanitize_aggregate_operator(operator: Any) -> str:
    """
    Validate an arithmetic operator

    Returns the trimmed operator if it is one of + - * / %, otherwise '+'.
    """
    if isinstance(operator, str) and operator.strip() in AGGREGATE_OPERATORS:
        return operator.strip()
    return DEFAULT_OPERATOR


def sanitize_aggregate_fields(fields: Any) -> List[str]:
    """
    Normalize a field list: trimmed, unique, in input order

    A string is treated as a single field name. Blank names and non-string
    entries are discarded.

    Example:
        >>> sanitize_aggregate_fields(["amount", " tax ", "amount"])
        ['amount', 'tax']
    """
    if isinstance(fields, str):
        fields = [fields]
    elif not isinstance(fields, (list, tuple)):
        return []

    names = (f.strip() for f in fields if isinstance(f, str))
    return list(dict.fromkeys(name for name in names if name))


def normalize(query: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Canonicalize the aggregate parameters of a raw query

    Args:
        query: Raw query parameters. Keys other than function, operator and
            fields are passed through untouched.

    Returns:
        New parameter dict. When the request aggregates, it carries
        'aggregate_fields' and 'count' = True and no longer carries 'fields'.
        When 'function' is missing or unknown it is removed and nothing else
        changes.
    """
    query = dict(query)

    if not query.get("function") or not is_valid_aggregate_function(query["function"]):
        if "function" in query:
            logger.info("aggregate_function_dropped", function=query["function"])
        query.pop("function", None)
        return query

    query["function"] = sanitize_aggregate_function(query["function"])

    operator = sanitize_aggregate_operator(query.get("operator"))
    if query.get("operator") and operator != str(query["operator"]).strip():
        logger.info("aggregate_operator_defaulted", operator=query["operator"], fallback=operator)
    query["operator"] = operator

    fields = sanitize_aggregate_fields(query.get("fields")) if query.get("fields") else []
    if fields:
        query["aggregate_fields"] = fields
        # Run through the engine's count path so it yields one aggregate row
        query["count"] = True
        query.pop("fields", None)
    else:
        query.pop("aggregate_fields", None)

    return query


@dataclass(frozen=True)
class AggregateRequest:
    """
    A validated aggregate request

    Examples:
        SUM(amount - tax)          -> function=SUM, operator='-', fields=('amount', 'tax')
        AVG(amount) by product_id  -> function=AVG, fields=('amount',), groupby=('product_id',)
    """

    function: AggregateFunction
    operator: ArithmeticOperator
    fields: Tuple[str, ...]
    groupby: Tuple[str, ...] = ()

    @property
    def is_grouped(self) -> bool:
        return bool(self.groupby)

    @staticmethod
    def from_query_vars(query_vars: Mapping[str, Any]) -> Optional["AggregateRequest"]:
        """
        Build a request from normalized query vars

        Returns None unless both 'function' and 'aggregate_fields' are set.
        """
        if not query_vars.get("function") or not query_vars.get("aggregate_fields"):
            return None

        function = sanitize_aggregate_function(query_vars["function"])
        if function not in AGGREGATE_FUNCTIONS:
            return None

        groupby = query_vars.get("groupby") or ()
        if isinstance(groupby, str):
            groupby = [groupby]

        return AggregateRequest(
            function=AggregateFunction(function),
            operator=ArithmeticOperator(sanitize_aggregate_operator(query_vars.get("operator"))),
            fields=tuple(sanitize_aggregate_fields(query_vars["aggregate_fields"])),
            groupby=tuple(g.strip() for g in groupby if isinstance(g, str) and g.strip()),
        )
