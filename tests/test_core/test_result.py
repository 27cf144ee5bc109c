"""
Tests for aggregate result extraction
"""

from decimal import Decimal

import pytest

from aggquery.core.query import AggregateQuery
from aggquery.core.result import ABSENT, Absent, RowSet, Scalar, absint, extract


class TestAbsint:
    """Test non-negative integer coercion"""

    @pytest.mark.parametrize(
        "value, expected",
        [(12, 12), (-12, 12), (Decimal("7.9"), 7), ("15", 15), ("3.5", 3), (None, 0), ("abc", 0), (2.99, 2)],
    )
    def test_absint(self, value, expected):
        assert absint(value) == expected


class TestOutcomeTypes:
    """Test the outcome union"""

    def test_values(self):
        assert Scalar(5).value == 5
        assert RowSet([{"a": 1}]).value == [{"a": 1}]
        assert ABSENT.value is None
        assert isinstance(ABSENT, Absent)

    def test_rowset_to_dataframe(self):
        df = RowSet([{"product_id": 1, "amount": 2.5}, {"product_id": 2, "amount": 1.0}]).to_dataframe()

        assert list(df.columns) == ["product_id", "amount"]
        assert len(df) == 2


class TestExtract:
    """Test which result path each request takes"""

    def test_integer_field_short_circuits(self, catalog, make_recording_db):
        """SUM over an int column returns the count-path value without a second fetch"""
        db = make_recording_db(var=10)

        q = AggregateQuery("orders", catalog, db, {"function": "SUM", "fields": "quantity"})

        assert q.get_outcome() == Scalar(10)
        assert q.get_result() == 10
        assert db.calls == [("get_var", 'SELECT SUM(quantity) as total_amount FROM "orders"')]

    def test_integer_result_is_coerced(self, catalog, make_recording_db):
        db = make_recording_db(var=Decimal("-3"))

        q = AggregateQuery("orders", catalog, db, {"function": "MIN", "fields": ["quantity", "tag_a"], "operator": "-"})

        assert q.get_result() == 3

    def test_decimal_field_fetches_scalar(self, catalog, make_recording_db):
        db = make_recording_db(var=Decimal("45.50"))

        q = AggregateQuery("orders", catalog, db, {"function": "SUM", "fields": "amount"})

        assert q.request == 'SELECT SUM(amount) as total_amount FROM "orders"'
        assert q.get_result() == Decimal("45.50")
        assert [call[0] for call in db.calls] == ["get_var", "get_var"]
        assert db.calls[1][1] == q.request

    def test_mixed_fields_fetch_scalar(self, catalog, make_recording_db):
        db = make_recording_db(var="12.500")

        q = AggregateQuery("orders", catalog, db, {"function": "SUM", "fields": ["quantity", "amount"]})

        assert q.get_result() == "12.500"
        assert len(db.calls) == 2

    @pytest.mark.parametrize("function", ["AVG", "STDDEV", "VAR_SAMP", "VAR_POP", "GROUP_CONCAT"])
    def test_non_integer_functions_fetch_scalar(self, catalog, make_recording_db, function):
        """Integer columns can still produce fractional or string aggregates"""
        db = make_recording_db(var="2.5")

        q = AggregateQuery("orders", catalog, db, {"function": function, "fields": "quantity"})

        assert q.get_result() == "2.5"
        assert len(db.calls) == 2

    def test_integer_division_fetches_scalar(self, catalog, make_recording_db):
        db = make_recording_db(var=1.5)

        q = AggregateQuery("orders", catalog, db, {"function": "SUM", "fields": ["quantity", "tag_a"], "operator": "/"})

        assert q.get_result() == 1.5

    def test_grouped_returns_rowset(self, catalog, make_recording_db):
        rows = [{"product_id": 1, "amount": 15.0}, {"product_id": 2, "amount": 10.0}]
        db = make_recording_db(rows=rows)

        q = AggregateQuery(
            "orders", catalog, db, {"function": "AVG", "fields": ["amount", "discount"], "groupby": ["product_id"]}
        )

        assert q.request == (
            'SELECT product_id, AVG(amount) as amount, AVG(discount) as discount FROM "orders" GROUP BY product_id'
        )
        assert q.get_outcome() == RowSet(rows)
        assert q.get_result() == rows
        assert len(db.calls) == 1

    def test_not_count_mode_is_absent(self, catalog, make_recording_db):
        """{function: SUM} without fields is a plain row query"""
        db = make_recording_db(rows=[{"id": 1}])

        q = AggregateQuery("orders", catalog, db, {"function": "SUM"})

        assert "aggregate_fields" not in q.query_vars
        assert not q.query_vars["count"]
        assert q.get_outcome() is ABSENT
        assert q.get_result() is None
        assert q.items == [{"id": 1}]

    def test_all_fields_dropped_keeps_count(self, catalog, make_recording_db):
        """Non-numeric fields leave the engine's count query in place"""
        db = make_recording_db(var=4)

        q = AggregateQuery("orders", catalog, db, {"function": "SUM", "fields": "status"})

        assert q.request == 'SELECT COUNT(*) FROM "orders"'
        assert q.get_result() == 4

    def test_unexecuted_query_is_absent(self, catalog, recording_db):
        assert extract(AggregateQuery("orders", catalog, recording_db)) is ABSENT
