"""
Pytest configuration and shared fixtures
"""

import pytest

from aggquery.core.database import BaseDatabase
from aggquery.core.duckdb_database import DuckDBDatabase
from aggquery.core.types import ColumnCatalog


class RecordingDatabase(BaseDatabase):
    """Database stand-in that records SQL and returns canned results"""

    def __init__(self, var=None, rows=None):
        self.var = var
        self.rows = rows or []
        self.calls = []

    def get_var(self, sql):
        self.calls.append(("get_var", sql))
        return self.var

    def get_results(self, sql):
        self.calls.append(("get_results", sql))
        return list(self.rows)


@pytest.fixture
def orders_types():
    """Declared column types of the orders table"""
    return {
        "id": "bigint(20) unsigned",
        "product_id": "bigint(20)",
        "quantity": "int",
        "amount": "decimal(18,9)",
        "tax": "decimal(18,9)",
        "discount": "DECIMAL(18,9)",
        "rate": "float",
        "tag_a": "smallint",
        "tag_b": "tinyint",
        "status": "varchar(20)",
        "notes": "longtext",
    }


@pytest.fixture
def catalog(orders_types):
    """Column catalog for the orders table"""
    return ColumnCatalog.from_types("orders", orders_types, primary="id")


@pytest.fixture
def recording_db():
    """Database stand-in with no canned results"""
    return RecordingDatabase()


@pytest.fixture
def make_recording_db():
    """Factory for database stand-ins with canned results"""
    return RecordingDatabase


@pytest.fixture
def orders_db():
    """In-memory DuckDB database holding a small orders table"""
    db = DuckDBDatabase(":memory:")
    db.execute(
        "CREATE TABLE orders ("
        "id INTEGER PRIMARY KEY, "
        "product_id INTEGER, "
        "quantity INTEGER, "
        "amount DECIMAL(10,2), "
        "tax DECIMAL(10,2), "
        "discount DECIMAL(10,2), "
        "status VARCHAR)"
    )
    db.execute(
        "INSERT INTO orders VALUES "
        "(1, 1, 2, 10.00, 1.00, 0.50, 'complete'), "
        "(2, 1, 3, 20.00, 2.00, 1.50, 'complete'), "
        "(3, 2, 1, 5.50, 0.50, 0.00, 'pending'), "
        "(4, 2, 4, 14.50, 1.50, 0.50, 'complete')"
    )
    yield db
    db.close()
