"""
DuckDB database adapter

Runs the SQL assembled by the row-query engine on an in-process DuckDB
connection. Tables can be created with plain SQL, registered from pandas
DataFrames, or loaded from CSV files.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List

import duckdb
import pandas as pd
import structlog

from aggquery.config import DUCKDB_PATH
from aggquery.core.database import BaseDatabase
from aggquery.core.types import ColumnCatalog
from aggquery.sql.clauses import quote_identifier, quote_literal

logger = structlog.get_logger(__name__)

# MySQL GROUP_CONCAT(... SEPARATOR 's'), which DuckDB cannot parse
_GROUP_CONCAT_SEPARATOR = re.compile(
    r"GROUP_CONCAT\(\s*(DISTINCT\s+)?(.+?)\s+SEPARATOR\s+('(?:[^']|'')*')\s*\)",
    re.IGNORECASE,
)


def to_duckdb_dialect(sql: str) -> str:
    """
    Translate the MySQL-only constructs the aggregate rewriter emits

    Example:
        >>> to_duckdb_dialect("GROUP_CONCAT(DISTINCT CONCAT(a, '|', b) SEPARATOR '|') AS c")
        "string_agg(DISTINCT CONCAT(a, '|', b), '|') AS c"
    """
    return _GROUP_CONCAT_SEPARATOR.sub(r"string_agg(\1\2, \3)", sql)


class DuckDBDatabase(BaseDatabase):
    """
    DuckDB-backed execution primitives

    Example:
        >>> db = DuckDBDatabase()
        >>> db.execute("CREATE TABLE orders (id INTEGER, amount DECIMAL(10,2))")
        >>> db.execute("INSERT INTO orders VALUES (1, 9.99)")
        >>> db.get_var('SELECT SUM(amount) FROM "orders"')
        Decimal('9.99')
    """

    def __init__(self, path: str = DUCKDB_PATH):
        """
        Initialize DuckDB connection

        Args:
            path: Database file, or ":memory:" for an in-memory database
        """
        self.path = path
        self.conn = duckdb.connect(path)

    def execute(self, sql: str) -> None:
        """Execute a statement without fetching results"""
        sql = to_duckdb_dialect(sql)
        logger.debug("sql_execute", sql=sql)
        self.conn.execute(sql)

    def get_var(self, sql: str) -> Any:
        sql = to_duckdb_dialect(sql)
        logger.debug("sql_get_var", sql=sql)
        row = self.conn.execute(sql).fetchone()
        if row is None:
            return None
        return row[0]

    def get_results(self, sql: str) -> List[Dict[str, Any]]:
        sql = to_duckdb_dialect(sql)
        logger.debug("sql_get_results", sql=sql)
        result = self.conn.execute(sql)

        # Fetch column names
        columns = [desc[0] for desc in result.description]

        return [dict(zip(columns, row)) for row in result.fetchall()]

    def register_dataframe(self, table: str, df: pd.DataFrame) -> None:
        """
        Register a pandas DataFrame as a queryable table

        Args:
            table: Name to use for the table in SQL
            df: DataFrame to expose
        """
        self.conn.register(table, df)

    def load_csv(self, table: str, path: str) -> None:
        """
        Create a view over a CSV file using DuckDB's auto-detecting reader

        Args:
            table: Name to use for the table in SQL
            path: Path to the CSV file
        """
        self.execute(
            f"CREATE OR REPLACE VIEW {quote_identifier(table)} AS "
            f"SELECT * FROM read_csv({quote_literal(str(path))}, auto_detect=true, header=true)"
        )

    def describe(self, table: str) -> Dict[str, str]:
        """
        Get declared column types of a table

        Returns:
            Dictionary mapping column names to DuckDB type names
        """
        return self.catalog(table).to_dict()

    def catalog(self, table: str, primary: str | None = None) -> ColumnCatalog:
        """Build the column catalog for a table"""
        return ColumnCatalog.from_duckdb(self.conn, table, primary=primary)

    def close(self):
        """Close DuckDB connection"""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()
