"""Query engine configuration constants.

Defaults for the row-query engine plus the literal aliases emitted by the
aggregate rewriter. Engine defaults can be overridden through environment
variables.
"""

import os

# Row-query engine defaults
DEFAULT_NUMBER = int(os.getenv("AGGQUERY_DEFAULT_NUMBER", "100"))  # LIMIT when 'number' is absent
DEFAULT_ORDER = os.getenv("AGGQUERY_DEFAULT_ORDER", "DESC").upper()
DUCKDB_PATH = os.getenv("AGGQUERY_DUCKDB_PATH", ":memory:")

# Aggregate projection literals
DEFAULT_OPERATOR = "+"
GROUP_CONCAT_SEPARATOR = "|"
TOTAL_ALIAS = "total_amount"
CONCAT_ALIAS = "concatenated_fields"

# Projection emitted by the engine in count mode
COUNT_EXPRESSION = "COUNT(*)"
COUNT_ALIAS = "count"
