# FILE: faqbot/chat/realtime.py
"""
Realtime record queries for the multi-intent chatbot.

Flow:
1. sample rows (up to REALTIME_SAMPLE_ROWS per collection) are fetched so the
   model sees real field names and value shapes
2. a JSON-mode call turns the question into {collection, filters, sort}
3. the descriptor is validated against the table columns and executed

FILTER OPERATORS:
    {"field": value}                      equality
    {"field": {"$gt": v}}  $gte $lt $lte  comparisons
    {"field": {"$ne": v}}                 inequality
    {"field": {"$contains": "text"}}      substring match

Unknown fields and operators are dropped with a warning. The `id` field is
never returned to the client.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from sqlalchemy import MetaData, String, Table, cast, inspect, select
from sqlalchemy.exc import SQLAlchemyError

from faqbot import config
from faqbot.chat.prompts import REALTIME_SYSTEM_PROMPT
from faqbot.errors import NoCollectionSpecified, RealtimeQueryError
from faqbot.llm.completer import Completer

logger = logging.getLogger(__name__)

HIDDEN_FIELDS = ("id",)


@dataclass
class QueryDescriptor:
    collection: str
    filters: Dict[str, Any] = field(default_factory=dict)
    sort: Dict[str, str] = field(default_factory=dict)


class RecordStore(Protocol):
    def collections(self) -> List[str]:
        ...

    def sample(self, collection: str, limit: int) -> List[Dict[str, Any]]:
        ...

    def query(self, descriptor: QueryDescriptor, limit: int) -> List[Dict[str, Any]]:
        ...


def strip_hidden(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k not in HIDDEN_FIELDS}


# =============================================================================
# SQL STORE
# =============================================================================

def _as_text(col):
    return col if isinstance(col.type, String) else cast(col, String)


_COMPARATORS = {
    "$gt": lambda col, v: col > v,
    "$gte": lambda col, v: col >= v,
    "$lt": lambda col, v: col < v,
    "$lte": lambda col, v: col <= v,
    "$ne": lambda col, v: col != v,
    "$contains": lambda col, v: _as_text(col).contains(str(v)),
}


class SqlRecordStore:
    """Reflects the configured collection tables and queries them."""

    def __init__(self, engine, collections: Optional[Iterable[str]] = None):
        self.engine = engine
        self._names = list(collections if collections is not None else config.REALTIME_COLLECTIONS)
        self._tables: Dict[str, Table] = {}

    def collections(self) -> List[str]:
        return list(self._names)

    def _table(self, name: str) -> Optional[Table]:
        if name not in self._names:
            return None
        table = self._tables.get(name)
        if table is None:
            if not inspect(self.engine).has_table(name):
                logger.warning("[realtime] Collection %s has no table", name)
                return None
            table = Table(name, MetaData(), autoload_with=self.engine)
            self._tables[name] = table
        return table

    def sample(self, collection: str, limit: int) -> List[Dict[str, Any]]:
        table = self._table(collection)
        if table is None:
            return []
        with self.engine.connect() as conn:
            rows = conn.execute(select(table).limit(limit)).mappings().all()
        return [strip_hidden(r) for r in rows]

    def query(self, descriptor: QueryDescriptor, limit: int) -> List[Dict[str, Any]]:
        table = self._table(descriptor.collection)
        if table is None:
            raise NoCollectionSpecified(f"unknown collection: {descriptor.collection}")

        stmt = select(table)
        for name, value in descriptor.filters.items():
            col = table.c.get(name)
            if col is None:
                logger.warning("[realtime] Dropping filter on unknown field %s.%s", descriptor.collection, name)
                continue
            if isinstance(value, dict):
                for op, operand in value.items():
                    compare = _COMPARATORS.get(op)
                    if compare is None:
                        logger.warning("[realtime] Dropping unknown operator %s on %s", op, name)
                        continue
                    stmt = stmt.where(compare(col, operand))
            else:
                stmt = stmt.where(col == value)

        for name, direction in descriptor.sort.items():
            col = table.c.get(name)
            if col is None:
                logger.warning("[realtime] Dropping sort on unknown field %s.%s", descriptor.collection, name)
                continue
            stmt = stmt.order_by(col.desc() if str(direction).lower() == "desc" else col.asc())

        stmt = stmt.limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [strip_hidden(r) for r in rows]


# =============================================================================
# QUERY BUILDER
# =============================================================================

def parse_descriptor(raw: str, collections: Iterable[str]) -> QueryDescriptor:
    """Parse the model's descriptor; raises NoCollectionSpecified if unusable."""
    try:
        data = json.loads(raw or "")
    except (json.JSONDecodeError, TypeError):
        data = None
    if not isinstance(data, dict):
        raise NoCollectionSpecified("query descriptor was not a JSON object")

    collection = data.get("collection")
    if not isinstance(collection, str) or not collection.strip():
        raise NoCollectionSpecified("no collection specified")
    collection = collection.strip()
    if collection not in set(collections):
        raise NoCollectionSpecified(f"unknown collection: {collection}")

    filters = data.get("filters")
    sort = data.get("sort")
    return QueryDescriptor(
        collection=collection,
        filters=dict(filters) if isinstance(filters, dict) else {},
        sort={k: str(v) for k, v in sort.items()} if isinstance(sort, dict) else {},
    )


class RealtimeQueryBuilder:
    def __init__(
        self,
        completer: Completer,
        store: RecordStore,
        max_rows: int = config.REALTIME_MAX_ROWS,
        sample_rows: int = config.REALTIME_SAMPLE_ROWS,
    ):
        self.completer = completer
        self.store = store
        self.max_rows = max_rows
        self.sample_rows = sample_rows

    async def fetch_samples(self) -> Dict[str, List[Dict[str, Any]]]:
        """Sample rows per collection. Failures leave that collection empty."""
        samples: Dict[str, List[Dict[str, Any]]] = {}
        for name in self.store.collections():
            try:
                samples[name] = await asyncio.to_thread(self.store.sample, name, self.sample_rows)
            except SQLAlchemyError as e:
                logger.warning("[realtime] Sampling %s failed: %s", name, e)
                samples[name] = []
        return samples

    async def build(
        self,
        question: str,
        facts: Mapping[str, Any],
        samples: Mapping[str, List[Dict[str, Any]]],
    ) -> QueryDescriptor:
        collections = self.store.collections()
        system = REALTIME_SYSTEM_PROMPT.format(
            samples=json.dumps(samples, ensure_ascii=False, default=str, indent=2),
            collections=", ".join(collections),
            facts=json.dumps(dict(facts), ensure_ascii=False, default=str),
        )
        raw = await self.completer.complete_json(system, question)
        descriptor = parse_descriptor(raw, collections)
        logger.info(
            "[realtime] collection=%s filters=%s sort=%s",
            descriptor.collection, list(descriptor.filters), descriptor.sort,
        )
        return descriptor

    async def run(self, descriptor: QueryDescriptor) -> List[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(self.store.query, descriptor, self.max_rows)
        except SQLAlchemyError as e:
            logger.error("[realtime] Query on %s failed: %s", descriptor.collection, e)
            raise RealtimeQueryError(str(e)) from e
