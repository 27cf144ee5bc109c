"""
Tests for the row-query engine
"""

import pytest

from aggquery.core.engine import RowQuery
from aggquery.interceptors.base import ClauseInterceptor


class UppercaseFields(ClauseInterceptor):
    """Interceptor that records what it saw and uppercases the projection"""

    def __init__(self):
        super().__init__()
        self.seen = []

    def get_name(self):
        return "Uppercase"

    def intercept(self, clauses, query):
        self.seen.append(clauses.fields)
        clauses = clauses.copy()
        clauses.fields = clauses.fields.upper()
        self.applied = True
        return clauses


class TestRowQueryClauses:
    """Test clause generation from query vars"""

    def test_default_row_query(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"number": None})

        assert q.request == 'SELECT * FROM "orders" ORDER BY id DESC LIMIT 100'

    def test_fields_projection(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"fields": ["amount", "missing", "amount"], "number": 0})

        assert q.request == 'SELECT amount FROM "orders" ORDER BY id DESC'

    def test_filters(self, catalog, recording_db):
        q = RowQuery(
            "orders",
            catalog,
            recording_db,
            {
                "status": "complete",
                "product_id__in": [1, 2],
                "quantity__not_in": 0,
                "unknown": "ignored",
                "tax__in": [],
                "orderby": "amount",
                "order": "asc",
                "number": 10,
                "offset": 20,
            },
        )

        assert q.request == (
            'SELECT * FROM "orders" WHERE status = \'complete\' AND product_id IN (1, 2) '
            "AND quantity NOT IN (0) ORDER BY amount ASC LIMIT 10 OFFSET 20"
        )

    def test_invalid_order_falls_back(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"order": "sideways", "orderby": "missing"})

        assert q.request == 'SELECT * FROM "orders" LIMIT 100'

    def test_count(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"count": True, "status": "complete", "number": 5})

        assert q.request == 'SELECT COUNT(*) FROM "orders" WHERE status = \'complete\''

    def test_count_with_groupby(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"count": True, "groupby": ["product_id", "missing"]})

        assert q.clauses.fields == "product_id, COUNT(*) as count"
        assert q.request == 'SELECT product_id, COUNT(*) as count FROM "orders" GROUP BY product_id'

    def test_grouped_count_pages_on_request(self, catalog, recording_db):
        q = RowQuery(
            "orders",
            catalog,
            recording_db,
            {"count": True, "groupby": "product_id", "orderby": "product_id", "order": "ASC", "number": 2},
        )

        assert q.request == (
            'SELECT product_id, COUNT(*) as count FROM "orders" '
            "GROUP BY product_id ORDER BY product_id ASC LIMIT 2"
        )

    def test_list_value_filters_by_membership(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"status": ["complete", "pending"], "number": 0})

        assert q.request == 'SELECT * FROM "orders" WHERE status IN (\'complete\', \'pending\') ORDER BY id DESC'

    def test_empty_list_value_adds_no_filter(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"status": [], "number": 0})

        assert "WHERE" not in q.request

    def test_numeric_string_limits(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"number": "5", "offset": " 10 "})

        assert q.request == 'SELECT * FROM "orders" ORDER BY id DESC LIMIT 5 OFFSET 10'

    def test_unparseable_number_uses_default(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"number": "abc", "offset": "later"})

        assert q.request == 'SELECT * FROM "orders" ORDER BY id DESC LIMIT 100'

    def test_unparseable_number_leaves_grouped_count_unlimited(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"count": True, "groupby": "product_id", "number": "abc"})

        assert q.request == 'SELECT product_id, COUNT(*) as count FROM "orders" GROUP BY product_id'

    def test_groupby_ignored_without_count(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"groupby": "product_id", "number": 1})

        assert "GROUP BY" not in q.request


class TestRowQueryExecution:
    """Test which execution primitive runs for each query shape"""

    def test_rows(self, catalog, make_recording_db):
        db = make_recording_db(rows=[{"id": 1}])

        q = RowQuery("orders", catalog, db, {"status": "complete"})

        assert q.items == [{"id": 1}]
        assert q.found_items == 1
        assert [call[0] for call in db.calls] == ["get_results"]

    def test_found_rows(self, catalog, make_recording_db):
        db = make_recording_db(var=7, rows=[{"id": 1}])

        q = RowQuery("orders", catalog, db, {"status": "complete", "number": 1, "no_found_rows": False})

        assert q.found_items == 7
        assert db.calls[1] == ("get_var", 'SELECT COUNT(*) FROM "orders" WHERE status = \'complete\'')

    def test_count_uses_get_var(self, catalog, make_recording_db):
        db = make_recording_db(var=4)

        q = RowQuery("orders", catalog, db, {"count": True})

        assert q.found_items == 4
        assert q.items == []
        assert db.calls == [("get_var", 'SELECT COUNT(*) FROM "orders"')]

    def test_grouped_count_uses_get_results(self, catalog, make_recording_db):
        rows = [{"product_id": 1, "count": 2}, {"product_id": 2, "count": 2}]
        db = make_recording_db(rows=rows)

        q = RowQuery("orders", catalog, db, {"count": True, "groupby": "product_id"})

        assert q.items == rows
        assert q.found_items == 2

    def test_no_query_vars_does_not_execute(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db)

        assert q.request == ""
        assert recording_db.calls == []

    def test_errors_propagate(self, catalog):
        class FailingDatabase:
            def get_results(self, sql):
                raise RuntimeError("connection lost")

        with pytest.raises(RuntimeError, match="connection lost"):
            RowQuery("orders", catalog, FailingDatabase(), {"status": "complete"})


class TestInterceptors:
    """Test the interceptor hook"""

    def test_interceptor_sees_generated_clauses(self, catalog, recording_db):
        interceptor = UppercaseFields()

        q = RowQuery("orders", catalog, recording_db, {"count": True, "groupby": "product_id"}, [interceptor])

        assert interceptor.seen == ["product_id, COUNT(*) as count"]
        assert q.request.startswith("SELECT PRODUCT_ID, COUNT(*) AS COUNT FROM")
        assert q.pipeline.get_applied_rewrites() == ["Uppercase: "]

    def test_originals_snapshot(self, catalog, recording_db):
        q = RowQuery("orders", catalog, recording_db, {"status": "complete"})

        q.query_vars["status"] = "pending"

        assert q.query_var_originals["status"] == "complete"
        assert q.query_var_originals["number"] is None
