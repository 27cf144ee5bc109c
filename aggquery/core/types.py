"""Column catalog for aggquery.

This module provides declared-type classification and the read-only column
catalog the query engine and the aggregate rewriter consult.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

import pandas as pd
import structlog

logger = structlog.get_logger(__name__)

# Declared SQL types an aggregate may be computed over
NUMERIC_COLUMN_TYPES = frozenset(
    {
        "tinyint",
        "smallint",
        "mediumint",
        "int",
        "bigint",
        "decimal",
        "numeric",
        "float",
        "double",
        "bit",
        "real",
    }
)

# Subset whose aggregates come back as whole numbers
INT_COLUMN_TYPES = frozenset({"tinyint", "smallint", "mediumint", "int", "bigint"})

# Engine spellings mapped onto the declared type names above
TYPE_ALIASES = {
    "integer": "int",
    "int4": "int",
    "signed": "int",
    "int8": "bigint",
    "long": "bigint",
    "hugeint": "bigint",
    "int2": "smallint",
    "short": "smallint",
    "int1": "tinyint",
    "utinyint": "tinyint",
    "usmallint": "smallint",
    "uinteger": "int",
    "ubigint": "bigint",
    "uhugeint": "bigint",
    "float4": "float",
    "float8": "double",
    "double precision": "double",
    "text": "varchar",
    "string": "varchar",
    "bool": "boolean",
}

_PRECISION_SUFFIX = re.compile(r"\s*\(.*\)\s*$")


class NumericKind(Enum):
    """How an aggregate over a numeric column comes back."""

    INTEGER = "integer"
    NON_INTEGER = "non-integer"

    def __str__(self) -> str:
        return self.value


def normalize_column_type(declared: str | None) -> str | None:
    """Reduce a declared column type to its bare lowercase name.

    Examples:
        >>> normalize_column_type("DECIMAL(10,2)")
        'decimal'
        >>> normalize_column_type("int(11) unsigned")
        'int'
        >>> normalize_column_type("INTEGER")
        'int'
    """
    if declared is None:
        return None

    name = str(declared).strip().lower()
    name = name.replace(" unsigned", "").replace(" zerofill", "")
    name = _PRECISION_SUFFIX.sub("", name).strip()

    return TYPE_ALIASES.get(name, name)


def is_numeric_type(declared: str | None) -> bool:
    """Check if a declared type is one of the numeric column types."""
    return normalize_column_type(declared) in NUMERIC_COLUMN_TYPES


def is_integer_type(declared: str | None) -> bool:
    """Check if a declared type is one of the integer column types."""
    return normalize_column_type(declared) in INT_COLUMN_TYPES


def numeric_kind(declared: str | None) -> NumericKind | None:
    """Classify a declared type, or None if it is not numeric."""
    if is_integer_type(declared):
        return NumericKind.INTEGER
    if is_numeric_type(declared):
        return NumericKind.NON_INTEGER
    return None


def infer_column_type(series: pd.Series) -> str:
    """Map a pandas column onto a declared SQL type name.

    Integer and float dtypes map by width; object columns holding Decimal
    values map to ``decimal``. Everything else falls back to a non-numeric
    type so it can never be aggregated.
    """
    dtype = series.dtype

    if pd.api.types.is_bool_dtype(dtype):
        return "boolean"

    if pd.api.types.is_integer_dtype(dtype):
        return {1: "tinyint", 2: "smallint", 4: "int"}.get(dtype.itemsize, "bigint")

    if pd.api.types.is_float_dtype(dtype):
        return "float" if dtype.itemsize == 4 else "double"

    if pd.api.types.is_datetime64_any_dtype(dtype):
        return "datetime"

    non_null = series.dropna()
    if len(non_null) and all(isinstance(v, Decimal) for v in non_null):
        return "decimal"

    return "varchar"


@dataclass(frozen=True)
class Column:
    """A single column definition: name and declared SQL type"""

    name: str
    type: str
    primary: bool = False

    def __repr__(self) -> str:
        return f"{self.name}: {self.type}"


class ColumnCatalog:
    """Column metadata for one table.

    Holds column definitions keyed by name. The catalog is read-only once
    built and may be shared by every query against the table.
    """

    def __init__(self, table: str, columns: list[Column]):
        """Initialize catalog.

        Args:
            table: Table the columns belong to
            columns: Column definitions, in table order

        Raises:
            ValueError: If the table name is empty
        """
        if not table:
            raise ValueError("Column catalog requires a table name")

        self.table = table
        self.columns = {column.name: column for column in columns}

    def __contains__(self, column: str) -> bool:
        """Check if column exists in catalog."""
        return column in self.columns

    def __len__(self) -> int:
        """Get number of columns."""
        return len(self.columns)

    def __repr__(self) -> str:
        cols = ", ".join(repr(column) for column in self.columns.values())
        return f"ColumnCatalog({self.table}: {cols})"

    def get_column_names(self) -> list[str]:
        """Get list of column names."""
        return list(self.columns.keys())

    def get_column_by(self, name: str) -> Column | None:
        """Get a column definition, or None if column doesn't exist."""
        if not isinstance(name, str):
            return None
        return self.columns.get(name)

    def column_exists(self, name: str) -> bool:
        """Check if a column exists in the catalog."""
        return self.get_column_by(name) is not None

    def column_type(self, name: str) -> str | None:
        """Get the declared type of a column, or None if column doesn't exist."""
        column = self.get_column_by(name)
        return column.type if column else None

    def is_column_numeric(self, name: str) -> bool:
        """Check if a column exists and has a numeric declared type."""
        return is_numeric_type(self.column_type(name))

    def is_column_integer(self, name: str) -> bool:
        """Check if a column exists and has an integer declared type."""
        return is_integer_type(self.column_type(name))

    def numeric_kind(self, name: str) -> NumericKind | None:
        """Classify a column for aggregation, or None if it can't be aggregated."""
        return numeric_kind(self.column_type(name))

    def primary_column(self) -> Column | None:
        """Get the primary column, falling back to the first column."""
        for column in self.columns.values():
            if column.primary:
                return column
        return next(iter(self.columns.values()), None)

    @staticmethod
    def from_types(table: str, types: dict[str, str], primary: str | None = None) -> "ColumnCatalog":
        """Build a catalog from a name -> declared type mapping.

        Args:
            table: Table name
            types: Dictionary mapping column names to declared SQL types
            primary: Optional primary column name

        Returns:
            ColumnCatalog
        """
        columns = [
            Column(name=name, type=declared, primary=(name == primary))
            for name, declared in types.items()
        ]
        return ColumnCatalog(table, columns)

    @staticmethod
    def from_dataframe(table: str, df: pd.DataFrame, primary: str | None = None) -> "ColumnCatalog":
        """Infer a catalog from a pandas DataFrame's dtypes.

        Args:
            table: Table name the DataFrame is registered under
            df: DataFrame to inspect
            primary: Optional primary column name

        Returns:
            ColumnCatalog
        """
        types = {str(name): infer_column_type(df[name]) for name in df.columns}
        return ColumnCatalog.from_types(table, types, primary=primary)

    @staticmethod
    def from_duckdb(conn: Any, table: str, primary: str | None = None) -> "ColumnCatalog":
        """Read a catalog from a DuckDB table via DESCRIBE.

        Args:
            conn: DuckDB connection
            table: Table or view name
            primary: Optional primary column name; defaults to the column
                DuckDB reports as the primary key, if any

        Returns:
            ColumnCatalog
        """
        result = conn.execute(f'DESCRIBE "{table}"')
        names = [desc[0] for desc in result.description]

        columns = []
        for row in result.fetchall():
            info = dict(zip(names, row))
            name = info["column_name"]
            is_primary = name == primary or (primary is None and info.get("key") == "PRI")
            columns.append(Column(name=name, type=info["column_type"], primary=is_primary))

        logger.debug("catalog_loaded", table=table, columns=len(columns))
        return ColumnCatalog(table, columns)

    def to_dict(self) -> dict[str, str]:
        """Convert catalog to dictionary."""
        return {name: column.type for name, column in self.columns.items()}
