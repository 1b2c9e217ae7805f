# FILE: tests/test_realtime.py
"""
Tests for faqbot/chat/realtime.py
Descriptor parsing, SQL record store filters/sort and the query builder.
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, insert
from sqlalchemy.pool import StaticPool

from conftest import FakeCompleter


@pytest.fixture
def records_engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    meta = MetaData()
    tours = Table(
        "tours", meta,
        Column("id", Integer, primary_key=True),
        Column("name", String(100)),
        Column("city", String(50)),
        Column("price", Integer),
        Column("seats", Integer),
    )
    meta.create_all(engine)
    with engine.begin() as conn:
        conn.execute(insert(tours), [
            {"name": "Harbour Cruise", "city": "Sydney", "price": 120, "seats": 10},
            {"name": "Temple Walk", "city": "Kyoto", "price": 60, "seats": 0},
            {"name": "Night Food Tour", "city": "Tokyo", "price": 90, "seats": 4},
            {"name": "Tokyo Day Trip", "city": "Tokyo", "price": 150, "seats": 2},
        ])
    yield engine
    engine.dispose()


class TestParseDescriptor:
    """Test parse_descriptor."""

    def test_valid(self):
        from faqbot.chat.realtime import parse_descriptor
        d = parse_descriptor('{"collection": "tours", "filters": {"city": "Tokyo"}, "sort": {"price": "desc"}}', ["tours"])
        assert d.collection == "tours"
        assert d.filters == {"city": "Tokyo"}
        assert d.sort == {"price": "desc"}

    @pytest.mark.parametrize("raw", ["nope", "[]", "{}", '{"collection": ""}', '{"collection": "payments"}'])
    def test_missing_or_unknown_collection(self, raw):
        from faqbot.chat.realtime import parse_descriptor
        from faqbot.errors import NoCollectionSpecified
        with pytest.raises(NoCollectionSpecified):
            parse_descriptor(raw, ["tours"])

    def test_bad_filters_and_sort_default(self):
        from faqbot.chat.realtime import parse_descriptor
        d = parse_descriptor('{"collection": "tours", "filters": [1], "sort": "price"}', ["tours"])
        assert d.filters == {}
        assert d.sort == {}


class TestSqlRecordStore:
    """Test queries against reflected tables."""

    def test_sample_strips_id(self, records_engine):
        from faqbot.chat.realtime import SqlRecordStore
        rows = SqlRecordStore(records_engine, ["tours"]).sample("tours", 3)
        assert len(rows) == 3
        assert all("id" not in r for r in rows)

    def test_missing_table_samples_empty(self, records_engine):
        from faqbot.chat.realtime import SqlRecordStore
        assert SqlRecordStore(records_engine, ["bookings"]).sample("bookings", 3) == []

    def test_equality_and_sort(self, records_engine):
        from faqbot.chat.realtime import QueryDescriptor, SqlRecordStore
        rows = SqlRecordStore(records_engine, ["tours"]).query(
            QueryDescriptor("tours", filters={"city": "Tokyo"}, sort={"price": "desc"}), limit=20,
        )
        assert [r["name"] for r in rows] == ["Tokyo Day Trip", "Night Food Tour"]

    def test_operators(self, records_engine):
        from faqbot.chat.realtime import QueryDescriptor, SqlRecordStore
        store = SqlRecordStore(records_engine, ["tours"])
        rows = store.query(QueryDescriptor("tours", filters={"price": {"$gte": 90, "$lt": 150}}, sort={"price": "asc"}), limit=20)
        assert [r["price"] for r in rows] == [90, 120]
        rows = store.query(QueryDescriptor("tours", filters={"seats": {"$ne": 0}, "name": {"$contains": "Tour"}}), limit=20)
        assert [r["name"] for r in rows] == ["Night Food Tour"]

    def test_contains_on_numeric_column(self, records_engine):
        import warnings
        from sqlalchemy.exc import SADeprecationWarning
        from faqbot.chat.realtime import QueryDescriptor, SqlRecordStore

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            rows = SqlRecordStore(records_engine, ["tours"]).query(
                QueryDescriptor("tours", filters={"price": {"$contains": 5}}), limit=20,
            )
        assert [r["name"] for r in rows] == ["Tokyo Day Trip"]
        assert not [w for w in caught if issubclass(w.category, SADeprecationWarning)]

    def test_unknown_fields_and_operators_dropped(self, records_engine):
        from faqbot.chat.realtime import QueryDescriptor, SqlRecordStore
        rows = SqlRecordStore(records_engine, ["tours"]).query(
            QueryDescriptor("tours", filters={"colour": "red", "price": {"$regex": ".*"}}, sort={"rating": "desc"}),
            limit=20,
        )
        assert len(rows) == 4

    def test_limit(self, records_engine):
        from faqbot.chat.realtime import QueryDescriptor, SqlRecordStore
        assert len(SqlRecordStore(records_engine, ["tours"]).query(QueryDescriptor("tours"), limit=2)) == 2


class TestRealtimeQueryBuilder:
    """Test the sample -> descriptor -> rows flow."""

    @pytest.mark.asyncio
    async def test_build_and_run(self, records_engine):
        from faqbot.chat.realtime import RealtimeQueryBuilder, SqlRecordStore
        completer = FakeCompleter(json_responses=['{"collection": "tours", "filters": {"city": "Kyoto"}, "sort": {}}'])
        builder = RealtimeQueryBuilder(completer, SqlRecordStore(records_engine, ["tours", "bookings"]), max_rows=20, sample_rows=3)

        samples = await builder.fetch_samples()
        assert len(samples["tours"]) == 3
        assert samples["bookings"] == []

        descriptor = await builder.build("temple tours in kyoto", {"child_count": 2}, samples)
        rows = await builder.run(descriptor)
        assert rows == [{"name": "Temple Walk", "city": "Kyoto", "price": 60, "seats": 0}]
        system = completer.json_calls[0]["system"]
        assert "Harbour Cruise" in system
        assert "tours, bookings" in system

    @pytest.mark.asyncio
    async def test_unknown_collection_raises(self, records_engine):
        from faqbot.chat.realtime import RealtimeQueryBuilder, SqlRecordStore
        from faqbot.errors import NoCollectionSpecified
        completer = FakeCompleter(json_responses=['{"filters": {}}'])
        builder = RealtimeQueryBuilder(completer, SqlRecordStore(records_engine, ["tours"]))
        with pytest.raises(NoCollectionSpecified):
            await builder.build("q", {}, {})
