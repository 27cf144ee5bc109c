"""
Base database interface

The row-query engine only needs two execution primitives: fetch a single
value and fetch a list of rows, both driven by final SQL text.
"""

from typing import Any, Dict, List


class BaseDatabase:
    """
    Base class for database adapters

    Adapters are responsible for:
    1. Executing SQL text produced by the engine
    2. Returning the first column of the first row for get_var()
    3. Returning rows as dictionaries for get_results()

    Errors raised by the underlying driver must propagate unchanged.
    """

    def get_var(self, sql: str) -> Any:
        """
        Execute SQL and return a single value

        Args:
            sql: SQL query string

        Returns:
            First column of the first row, or None if there are no rows
        """
        raise NotImplementedError("Subclasses must implement get_var()")

    def get_results(self, sql: str) -> List[Dict[str, Any]]:
        """
        Execute SQL and return all rows

        Args:
            sql: SQL query string

        Returns:
            List of rows as dictionaries keyed by column name

        Example:
            [{'product_id': 1, 'amount': Decimal('12.50')}]
        """
        raise NotImplementedError("Subclasses must implement get_results()")
