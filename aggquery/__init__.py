"""
aggquery - aggregate clause rewriting for row queries

This package turns a declarative aggregate request (function, fields,
operator, groupby) into the SELECT/GROUP BY clauses of an ordinary row query,
validating fields against the table's column catalog, and extracts a scalar
or grouped result.
"""

__version__ = "0.1.0"

# Main API
from aggquery.core.duckdb_database import DuckDBDatabase
from aggquery.core.query import AggregateQuery, query
from aggquery.core.result import ABSENT, Absent, RowSet, Scalar
from aggquery.core.types import ColumnCatalog

__all__ = [
    "__version__",
    "query",
    "AggregateQuery",
    "ColumnCatalog",
    "DuckDBDatabase",
    "Scalar",
    "RowSet",
    "Absent",
    "ABSENT",
]
