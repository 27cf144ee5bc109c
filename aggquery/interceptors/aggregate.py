"""
Aggregate clause rewriter

Replaces the count projection generated by the row-query engine with an
aggregate projection built from the query's aggregate parameters.

Without grouping:
    SUM(amount - tax) as total_amount
    GROUP_CONCAT(DISTINCT CONCAT(tag_a, '|', tag_b) SEPARATOR '|') AS concatenated_fields

With grouping:
    product_id, AVG(amount) as amount, AVG(discount) as discount
"""

from typing import TYPE_CHECKING, Iterable, List

import structlog

from aggquery.config import (
    CONCAT_ALIAS,
    COUNT_ALIAS,
    COUNT_EXPRESSION,
    GROUP_CONCAT_SEPARATOR,
    TOTAL_ALIAS,
)
from aggquery.core.request import AggregateFunction, AggregateRequest
from aggquery.core.types import ColumnCatalog
from aggquery.interceptors.base import ClauseInterceptor
from aggquery.sql.clauses import ClauseSet

if TYPE_CHECKING:
    from aggquery.core.engine import RowQuery

logger = structlog.get_logger(__name__)

COUNT_SUFFIX = f", {COUNT_EXPRESSION} as {COUNT_ALIAS}"


def extract_groupby_names(projection: str) -> str:
    """
    Recover the grouping columns from a count projection

    The engine renders grouped counts as "<columns>, COUNT(*) as count" and
    plain counts as "COUNT(*)". Everything from the count suffix on is cut,
    trailing commas and spaces are stripped, and any bare COUNT(*) removed.

    Examples:
        >>> extract_groupby_names("product_id, COUNT(*) as count")
        'product_id'
        >>> extract_groupby_names("COUNT(*)")
        ''
    """
    pos = projection.find(COUNT_SUFFIX)
    names = projection[:pos] if pos != -1 else projection

    names = names.rstrip(", ")
    names = names.replace(COUNT_EXPRESSION, "")

    return names.strip()


def validate_aggregate_fields(fields: Iterable[str], catalog: ColumnCatalog) -> List[str]:
    """
    Keep the fields that exist in the catalog and are numeric

    Order is preserved; anything else is dropped silently.
    """
    validated = []
    for name in fields:
        name = name.strip()
        if catalog.column_exists(name) and catalog.is_column_numeric(name):
            validated.append(name)
    return validated


def build_aggregate_clause(
    function: AggregateFunction, operator: str, fields: List[str], grouped: bool
) -> str:
    """
    Build the aggregate part of the projection

    Args:
        function: Aggregate function
        operator: Operator joining fields when not grouped
        fields: Validated field names
        grouped: Whether grouping columns precede the aggregates

    Returns:
        Comma-separated aggregate expressions
    """
    name = function.value
    sep = GROUP_CONCAT_SEPARATOR

    if not grouped:
        if function is AggregateFunction.GROUP_CONCAT:
            concat = "CONCAT(" + f", '{sep}', ".join(fields) + ")"
            return f"GROUP_CONCAT(DISTINCT {concat} SEPARATOR '{sep}') AS {CONCAT_ALIAS}"

        expression = f" {operator} ".join(fields)
        return f"{name}({expression}) as {TOTAL_ALIAS}"

    clauses = []
    for field in fields:
        if function is AggregateFunction.GROUP_CONCAT:
            clauses.append(f"{name}(DISTINCT {field}) as {field}")
        else:
            clauses.append(f"{name}({field}) as {field}")

    return ", ".join(clauses)


class AggregateClauseRewriter(ClauseInterceptor):
    """
    Rewrite a count projection into an aggregate projection

    Reads the aggregate parameters from the query's original vars, so running
    it again over the same query yields the same clauses.
    """

    def __init__(self, catalog: ColumnCatalog):
        super().__init__()
        self.catalog = catalog

    def get_name(self) -> str:
        return "Aggregate rewrite"

    def intercept(self, clauses: ClauseSet, query: "RowQuery") -> ClauseSet:
        self.applied = False
        self.description = ""

        request = AggregateRequest.from_query_vars(query.query_var_originals)
        if request is None:
            return clauses

        return self.rewrite(clauses, request)

    def rewrite(self, clauses: ClauseSet, request: AggregateRequest) -> ClauseSet:
        """
        Replace the projection of clauses with the aggregate projection

        Args:
            clauses: Clauses generated in count mode
            request: Aggregate request

        Returns:
            New ClauseSet, or the input unchanged when no field survives
            validation
        """
        groupby_names = extract_groupby_names(clauses.fields)

        fields = validate_aggregate_fields(request.fields, self.catalog)
        if not fields:
            logger.info(
                "aggregate_rewrite_skipped",
                table=self.catalog.table,
                fields=list(request.fields),
            )
            return clauses

        aggregate_clause = build_aggregate_clause(
            request.function, request.operator.value, fields, grouped=bool(groupby_names)
        )

        rewritten = clauses.copy()
        if groupby_names:
            rewritten.fields = f"{groupby_names}, {aggregate_clause}"
        else:
            rewritten.fields = aggregate_clause

        self.applied = True
        self.description = rewritten.fields
        logger.debug(
            "aggregate_clause_rewritten",
            table=self.catalog.table,
            function=request.function.value,
            fields=rewritten.fields,
        )
        return rewritten
