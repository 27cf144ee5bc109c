"""
Main Query API - user-facing interface for aggquery

AggregateQuery is a RowQuery that understands aggregate parameters:
function, fields, operator and groupby.

Example:
    >>> from aggquery import DuckDBDatabase, query
    >>> db = DuckDBDatabase()
    >>> db.execute("CREATE TABLE orders (id INTEGER, amount DECIMAL(10,2), tax DECIMAL(10,2))")
    >>> q = query("orders", db, function="SUM", fields=["amount", "tax"], operator="-")
    >>> q.request
    'SELECT SUM(amount - tax) as total_amount FROM "orders"'
    >>> q.get_result()
    Decimal('42.10')
"""

from typing import Any, List, Mapping, Optional

import structlog

from aggquery.core.database import BaseDatabase
from aggquery.core.engine import RowQuery
from aggquery.core.request import AggregateRequest, normalize
from aggquery.core.result import ExecutionOutcome, extract
from aggquery.core.types import ColumnCatalog
from aggquery.interceptors.aggregate import AggregateClauseRewriter
from aggquery.interceptors.base import ClauseInterceptor

logger = structlog.get_logger(__name__)


class AggregateQuery(RowQuery):
    """
    Row query with support for SQL aggregate functions

    Supported aggregate query vars, on top of RowQuery's:
        function    SUM, AVG, MAX, MIN, GROUP_CONCAT, STDDEV, VAR_SAMP, VAR_POP
        fields      Numeric column(s) to aggregate
        operator    + - * / %, joins multiple fields (default +)
        groupby     Column(s) to aggregate per group

    An unknown function turns the query back into a plain row query; unknown
    or non-numeric fields are left out of the aggregate.
    """

    reserved_query_vars = RowQuery.reserved_query_vars | {
        "function",
        "operator",
        "aggregate_fields",
    }

    def __init__(
        self,
        table: str,
        catalog: ColumnCatalog,
        db: BaseDatabase,
        query_vars: Optional[Mapping[str, Any]] = None,
        interceptors: Optional[List[ClauseInterceptor]] = None,
    ):
        """
        Initialize query, running it immediately if query vars are given

        Args:
            table: Table to query
            catalog: Column metadata for the table
            db: Database adapter
            query_vars: Query vars, including aggregate parameters
            interceptors: Additional interceptors, run after the aggregate rewrite
        """
        self.rewriter = AggregateClauseRewriter(catalog)
        super().__init__(
            table,
            catalog,
            db,
            query_vars=None,
            interceptors=[self.rewriter, *(interceptors or [])],
        )

        if query_vars:
            self.query(query_vars)

    def query(self, query_vars: Mapping[str, Any]):
        return super().query(normalize(query_vars))

    def get_aggregate_request(self) -> Optional[AggregateRequest]:
        """Get the normalized aggregate request, or None for a plain query"""
        return AggregateRequest.from_query_vars(self.query_var_originals)

    def get_outcome(self) -> ExecutionOutcome:
        """
        Get the aggregate outcome of the executed query

        Returns:
            Scalar, RowSet or ABSENT
        """
        return extract(self)

    def get_result(self) -> Any:
        """
        Get the aggregate result as a plain value

        Returns:
            int for integer aggregates, the raw database value for other
            single aggregates, a list of rows for grouped aggregates, or None
            when the query is not an aggregate query (use items instead)
        """
        return self.get_outcome().value

    def column_exists(self, name: str) -> bool:
        """Check if a column exists in the table"""
        return self.catalog.column_exists(name)

    def is_column_numeric(self, name: str) -> bool:
        """Check if a column exists and is numeric"""
        return self.catalog.is_column_numeric(name)


# Convenience function for top-level API
def query(
    table: str,
    db: BaseDatabase,
    catalog: Optional[ColumnCatalog] = None,
    **query_vars: Any,
) -> AggregateQuery:
    """
    Run an aggregate or row query against a table

    This is the main entry point for the aggquery API.

    Args:
        table: Table name
        db: Database adapter. When no catalog is given it must provide
            catalog(table), as DuckDBDatabase does.
        catalog: Optional column catalog
        **query_vars: Query vars

    Returns:
        Executed AggregateQuery

    Example:
        >>> q = query("orders", db, function="AVG", fields="amount", groupby="product_id")
        >>> q.get_result()
        [{'product_id': 1, 'amount': 12.5}, {'product_id': 2, 'amount': 7.0}]
    """
    if catalog is None:
        catalog = db.catalog(table)

    q = AggregateQuery(table, catalog, db)
    q.query(query_vars)
    return q
