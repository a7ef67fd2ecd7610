# backend-services/stock-directory-service/tests/conftest.py
"""
Pytest configuration and shared fixtures for stock-directory-service tests
Centralizes the app/client fixtures, an in-memory stocks collection and
sample stock payloads
"""

import copy
import os
import re
import sys
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

# Ensure local imports resolve when running from repo root
SERVICE_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, SERVICE_ROOT)
sys.path.insert(0, os.path.abspath(os.path.join(SERVICE_ROOT, '..')))

from app import create_app
from config import Settings
from database.mongo_client import StockRepository

# -------------------------------------------------------------------
# In-memory stand-in for the `stocks` collection
# -------------------------------------------------------------------

def _get_path(doc: Dict[str, Any], dotted: str) -> Any:
    value: Any = doc
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, cond in query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in cond):
                return False
            continue
        value = _get_path(doc, key)
        if isinstance(cond, dict) and "$regex" in cond:
            flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
            if not isinstance(value, str) or re.search(cond["$regex"], value, flags) is None:
                return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    def sort(self, field, direction=1):
        self._docs = sorted(self._docs, key=lambda d: _get_path(d, field), reverse=direction == -1)
        return self

    def limit(self, n):
        if n:
            self._docs = self._docs[:n]
        return self

    def __iter__(self):
        return iter(copy.deepcopy(self._docs))


class FakeStocksCollection:
    """Supports exactly the calls StockRepository makes, with a unique symbol."""
    name = "stocks"

    def __init__(self):
        self.docs: List[Dict[str, Any]] = []
        self.indexes: List[Dict[str, Any]] = []

    def create_index(self, keys, **kwargs):
        self.indexes.append({"keys": keys, **kwargs})
        return kwargs.get("name")

    def find(self, query=None):
        return FakeCursor([d for d in self.docs if _matches(d, query or {})])

    def find_one(self, query):
        for d in self.docs:
            if _matches(d, query):
                return copy.deepcopy(d)
        return None

    def insert_one(self, doc):
        if any(d["symbol"] == doc.get("symbol") for d in self.docs):
            raise DuplicateKeyError("E11000 duplicate key error collection: stocks index: symbol_unique_idx")
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        return MagicMock(inserted_id=doc["_id"])

    def find_one_and_replace(self, query, replacement, return_document=ReturnDocument.BEFORE):
        for i, d in enumerate(self.docs):
            if _matches(d, query):
                if any(o["symbol"] == replacement.get("symbol") for o in self.docs if o is not d):
                    raise DuplicateKeyError("E11000 duplicate key error collection: stocks index: symbol_unique_idx")
                new_doc = {"_id": d["_id"], **copy.deepcopy(replacement)}
                self.docs[i] = new_doc
                return copy.deepcopy(new_doc if return_document == ReturnDocument.AFTER else d)
        return None

    def find_one_and_delete(self, query):
        for i, d in enumerate(self.docs):
            if _matches(d, query):
                return self.docs.pop(i)
        return None

    def count_documents(self, query):
        return len([d for d in self.docs if _matches(d, query)])


# -------------------------------------------------------------------
# Settings / app / client fixtures
# -------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(mongo_uri="mongodb://localhost:27017/test_stock_directory", db_name="test_stock_directory")


@pytest.fixture
def stocks_collection() -> FakeStocksCollection:
    return FakeStocksCollection()


@pytest.fixture
def repository(stocks_collection) -> StockRepository:
    return StockRepository(collection=stocks_collection)


@pytest.fixture
def app(settings, repository):
    flask_app = create_app(settings, repository=repository)
    flask_app.config["TESTING"] = True
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def failing_client(settings):
    """Client whose collection raises on every call, like an unreachable MongoDB."""
    from pymongo.errors import ServerSelectionTimeoutError
    broken = MagicMock()
    for method in ("find", "find_one", "insert_one", "find_one_and_replace", "find_one_and_delete"):
        getattr(broken, method).side_effect = ServerSelectionTimeoutError("mongodb:27017: connection refused")
    flask_app = create_app(settings, repository=StockRepository(collection=broken))
    flask_app.config["TESTING"] = True
    return flask_app.test_client()


# -------------------------------------------------------------------
# Sample data
# -------------------------------------------------------------------

@pytest.fixture
def make_stock():
    """Factory fixture: call with overrides to get a stock payload."""
    def _make(**overrides):
        stock = {
            "symbol": "AAPL",
            "name": "Apple Inc.",
            "price": 189.5,
            "pe": 29.1,
            "marketCap": 2950000000000,
            "description": "Consumer electronics and services.",
            "logo_url": "https://example.com/logos/aapl.png",
            "sector": "Technology",
            "graham_props": {
                "graham_score": 4,
                "current_ratio": 0.99,
                "debt_to_equity": 1.8,
                "book_value": 4.3,
                "graham_rank": 120,
                "eps": 6.42,
                "intrinsic_value": 95.2,
            },
            "magic_formula_props": {
                "roa": 0.28,
                "magic_formula_rank": 14,
            },
        }
        stock.update(overrides)
        return stock
    return _make


@pytest.fixture
def seed_stocks(stocks_collection, make_stock):
    """Inserts a small universe directly into the collection."""
    rows = [
        make_stock(symbol="AAPL", name="Apple Inc.", sector="Technology",
                   graham_props={"graham_rank": 3}, magic_formula_props={"magic_formula_rank": 2}),
        make_stock(symbol="MSFT", name="Microsoft Corp.", sector="Technology",
                   graham_props={"graham_rank": 1}, magic_formula_props={"magic_formula_rank": 4}),
        make_stock(symbol="JPM", name="JPMorgan Chase & Co.", sector="Financial Services",
                   graham_props={"graham_rank": 2}, magic_formula_props={"magic_formula_rank": 1}),
        make_stock(symbol="APD", name="Air Products and Chemicals", sector="Basic Materials",
                   graham_props={"graham_rank": 5}, magic_formula_props={"magic_formula_rank": 3}),
        make_stock(symbol="XOM", name="Exxon Mobil", sector="Energy",
                   graham_props={"graham_rank": 4}, magic_formula_props={"magic_formula_rank": 5}),
    ]
    for row in rows:
        stocks_collection.insert_one(row)
    return rows
