# backend-services/stock-directory-service/database/mongo_client.py
"""
MongoDB client and CRUD operations for stock-directory-service
Owns the connection and the `stocks` collection; every public method maps to
exactly one datastore call so each request touches at most one document write.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, MongoClient, ReturnDocument, errors

logger = logging.getLogger(__name__)

SYMBOL_INDEX_NAME = "symbol_unique_idx"
MAGIC_FORMULA_RANK_FIELD = "magic_formula_props.magic_formula_rank"
GRAHAM_RANK_FIELD = "graham_props.graham_rank"


def _contains_ci(text: str) -> Dict[str, Any]:
    """Case-insensitive literal substring match."""
    return {"$regex": re.escape(text), "$options": "i"}


class StockRepository:
    """
    Single responsibility: hold the Mongo connection and run stock queries.

    The collection may be injected directly (tests, scripts); otherwise it is
    resolved from the settings when `connect()` is called.
    """

    def __init__(self, settings: Any = None, collection: Any = None, client: Optional[MongoClient] = None):
        self.settings = settings
        self.client = client
        self.collection = collection
        self._indexes_ready = False

    @classmethod
    def from_settings(cls, settings: Any) -> "StockRepository":
        repo = cls(settings=settings)
        repo.connect()
        return repo

    def connect(self) -> bool:
        """
        Creates the client and checks the server with a ping.

        A failed ping is logged, not raised: the collection handle is still
        bound so requests fail individually until MongoDB comes back. The
        symbol index is then created by the first successful `ping()` or write.
        """
        if self.collection is not None:
            return True
        self.client = MongoClient(
            self.settings.mongo_uri,
            serverSelectionTimeoutMS=self.settings.server_selection_timeout_ms,
        )
        self.collection = self.client[self.settings.db_name][self.settings.collection_name]
        try:
            self.client.admin.command("ping")
            logger.info("Stock-directory-service successfully connected to MongoDB.")
            self.ensure_indexes()
            return True
        except errors.PyMongoError as e:
            logger.critical(f"Stock-directory-service could not connect to MongoDB: {e}")
            return False

    def initialize_indexes(self) -> None:
        """Unique index on symbol; the database is the only uniqueness guard."""
        self.collection.create_index(
            [("symbol", ASCENDING)],
            name=SYMBOL_INDEX_NAME,
            unique=True,
        )
        logger.info(f"Ensured index '{SYMBOL_INDEX_NAME}' on '{self.collection.name}'.")

    def ensure_indexes(self) -> bool:
        """Creates the indexes once per repository; retried on later calls if it failed."""
        if self._indexes_ready:
            return True
        try:
            self.initialize_indexes()
        except errors.PyMongoError as e:
            logger.warning(f"Could not ensure index '{SYMBOL_INDEX_NAME}', will retry: {e}")
            return False
        self._indexes_ready = True
        return True

    def ping(self) -> bool:
        if self.client is None:
            return self.collection is not None
        try:
            self.client.admin.command("ping")
        except errors.PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False
        self.ensure_indexes()
        return True

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    # ----------------------------------------------------------------
    # Reads
    # ----------------------------------------------------------------

    def find_all(self) -> List[Dict[str, Any]]:
        return list(self.collection.find())

    def find_limited(self, limit: int) -> List[Dict[str, Any]]:
        return list(self.collection.find().limit(limit))

    def find_top_ranked(self, rank_field: str, limit: int) -> List[Dict[str, Any]]:
        """Ascending by the given rank field, rank 1 first."""
        return list(self.collection.find().sort(rank_field, ASCENDING).limit(limit))

    def find_by_symbol(self, symbol: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"symbol": symbol})

    def search(self, query: str, limit: int) -> List[Dict[str, Any]]:
        pattern = _contains_ci(query)
        cursor = self.collection.find({"$or": [{"symbol": pattern}, {"name": pattern}]})
        return list(cursor.limit(limit))

    def find_by_sector(self, sector: str) -> List[Dict[str, Any]]:
        return list(self.collection.find({"sector": _contains_ci(sector)}))

    # ----------------------------------------------------------------
    # Writes
    # ----------------------------------------------------------------

    def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        Inserts the document and returns it with its generated `_id`.

        Raises:
            DuplicateKeyError: If the symbol is already taken.
        """
        self.ensure_indexes()
        doc = dict(document)
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    def replace_by_symbol(self, symbol: str, document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Full replacement; returns the stored document after the write, or None."""
        self.ensure_indexes()
        return self.collection.find_one_and_replace(
            {"symbol": symbol},
            document,
            return_document=ReturnDocument.AFTER,
        )

    def delete_by_symbol(self, symbol: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one_and_delete({"symbol": symbol})
