"""
Row-query engine

Turns a mapping of query vars into clauses, lets interceptors rewrite them,
assembles the SQL and runs it through a database adapter.

Example:
    >>> q = RowQuery("orders", catalog, db, {"status": "complete", "number": 10})
    >>> q.request
    'SELECT * FROM "orders" WHERE status = \\'complete\\' ORDER BY id DESC LIMIT 10'
    >>> q.items
    [{'id': 3, 'status': 'complete', ...}, ...]
"""

from typing import Any, Dict, List, Mapping, Optional

import structlog

from aggquery.config import COUNT_ALIAS, COUNT_EXPRESSION, DEFAULT_NUMBER, DEFAULT_ORDER
from aggquery.core.database import BaseDatabase
from aggquery.core.types import ColumnCatalog
from aggquery.interceptors.base import ClauseInterceptor, InterceptorPipeline
from aggquery.sql.clauses import ClauseSet, Condition, OrderByColumn, build_request

logger = structlog.get_logger(__name__)

# Query vars with engine meaning; every other key is a candidate column filter
QUERY_VAR_DEFAULTS: Dict[str, Any] = {
    "fields": None,
    "count": False,
    "groupby": None,
    "number": None,
    "offset": 0,
    "orderby": None,
    "order": DEFAULT_ORDER,
    "no_found_rows": True,
}

FILTER_SUFFIXES = {
    "__not_in": "NOT IN",
    "__in": "IN",
}


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _as_int(value: Any) -> Optional[int]:
    """Parse an integer query var; None when absent or unparseable"""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return None


class RowQuery:
    """
    Generic row query against one table

    Supported query vars:
        fields          Columns to select (default: all)
        count           Return a count instead of rows
        groupby         Columns to group a count by
        number          Row limit (default: 100, 0 for none)
        offset          Rows to skip
        orderby         Column to order by (default: primary column)
        order           ASC or DESC
        no_found_rows   Skip counting all matching rows (default: True)
        <column>        Equality filter
        <column>__in    Membership filter
        <column>__not_in

    Keys naming no known column are ignored.
    """

    reserved_query_vars = frozenset(QUERY_VAR_DEFAULTS)

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
            db: Database adapter providing get_var() and get_results()
            query_vars: Query vars (see class docstring)
            interceptors: Clause interceptors owned by this query
        """
        self.table = table
        self.catalog = catalog
        self.db = db
        self.pipeline = InterceptorPipeline(interceptors or [])

        self.query_vars: Dict[str, Any] = {}
        self.query_var_originals: Dict[str, Any] = {}
        self.clauses: Optional[ClauseSet] = None
        self.request = ""
        self.items: List[Dict[str, Any]] = []
        self.found_items: Any = 0

        if query_vars:
            self.query(query_vars)

    def query(self, query_vars: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """
        Parse query vars, build the SQL and execute it

        Returns:
            Matching rows (empty for ungrouped counts; see found_items)
        """
        self.parse_query(query_vars)

        self.clauses = self.pipeline.apply(self.get_clauses(), self)
        self.request = build_request(self.table, self.clauses)

        self._execute()
        return self.items

    def parse_query(self, query_vars: Mapping[str, Any]) -> None:
        """Merge query vars over the defaults and snapshot the result"""
        self.query_vars = {**QUERY_VAR_DEFAULTS, **dict(query_vars)}
        self.query_var_originals = dict(self.query_vars)

    def is_count(self) -> bool:
        return bool(self.query_vars.get("count"))

    def get_groupby(self) -> List[str]:
        """Grouping columns that exist in the catalog, deduplicated"""
        names = []
        for name in _as_list(self.query_vars.get("groupby")):
            if isinstance(name, str) and self.catalog.column_exists(name.strip()):
                names.append(name.strip())
        return list(dict.fromkeys(names))

    def get_clauses(self) -> ClauseSet:
        """Generate the clauses for the current query vars"""
        groupby = self.get_groupby()

        clauses = ClauseSet(
            fields=self._get_fields(groupby),
            where=self._get_where(),
            groupby=groupby if self.is_count() else [],
            orderby=self._get_orderby(),
        )
        clauses.limit, clauses.offset = self._get_limits(groupby)

        return clauses

    def _get_fields(self, groupby: List[str]) -> str:
        if self.is_count():
            if groupby:
                return f"{', '.join(groupby)}, {COUNT_EXPRESSION} as {COUNT_ALIAS}"
            return COUNT_EXPRESSION

        fields = [
            name.strip()
            for name in _as_list(self.query_vars.get("fields"))
            if isinstance(name, str) and self.catalog.column_exists(name.strip())
        ]
        return ", ".join(dict.fromkeys(fields)) if fields else "*"

    def _get_where(self) -> List[Condition]:
        conditions = []

        for key, value in self.query_vars.items():
            if key in self.reserved_query_vars or not isinstance(key, str):
                continue

            column, operator = key, "="
            for suffix, op in FILTER_SUFFIXES.items():
                if key.endswith(suffix):
                    column, operator = key[: -len(suffix)], op
                    break

            if not self.catalog.column_exists(column):
                continue

            # List values on a plain key filter by membership
            if operator == "=" and isinstance(value, (list, tuple, set)):
                operator = "IN"

            if operator == "=":
                conditions.append(Condition(column, operator, value))
                continue

            values = _as_list(value)
            if values:
                conditions.append(Condition(column, operator, values))

        return conditions

    def _get_orderby(self) -> List[OrderByColumn]:
        orderby = self.query_vars.get("orderby")

        # Counts are only ordered on request
        if orderby is None and self.is_count():
            return []

        if orderby is None:
            primary = self.catalog.primary_column()
            orderby = primary.name if primary else None

        if not isinstance(orderby, str) or not self.catalog.column_exists(orderby):
            return []

        direction = str(self.query_vars.get("order") or DEFAULT_ORDER).upper()
        if direction not in ("ASC", "DESC"):
            direction = DEFAULT_ORDER

        return [OrderByColumn(orderby, direction)]

    def _get_limits(self, groupby: List[str]):
        number = _as_int(self.query_vars.get("number"))

        if self.is_count():
            # Ungrouped counts produce one row; grouped counts page on request
            if not groupby or number is None:
                return None, None
        elif number is None:
            number = DEFAULT_NUMBER

        if number <= 0:
            return None, None

        return number, _as_int(self.query_vars.get("offset")) or None

    def _execute(self) -> None:
        logger.debug("row_query_execute", table=self.table, sql=self.request)

        if self.is_count():
            if self.clauses.groupby:
                self.items = self.db.get_results(self.request)
                self.found_items = len(self.items)
            else:
                self.items = []
                self.found_items = self.db.get_var(self.request)
            return

        self.items = self.db.get_results(self.request)

        if self.query_vars.get("no_found_rows"):
            self.found_items = len(self.items)
        else:
            count_clauses = ClauseSet(
                fields=COUNT_EXPRESSION, join=self.clauses.join, where=self.clauses.where
            )
            self.found_items = self.db.get_var(build_request(self.table, count_clauses))
