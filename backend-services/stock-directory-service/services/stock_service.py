# backend-services/stock-directory-service/services/stock_service.py

"""
Stock directory business logic

Sits between the Flask routes and database.mongo_client:
- Validates request bodies against shared.contracts before any write
- Canonicalises path symbols to uppercase for lookup/update/delete
- Applies the default limit and the fixed search cap
- Raises typed errors that the routes map onto HTTP status codes
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from config import DEFAULT_LIMIT, SEARCH_RESULT_CAP
from database.mongo_client import GRAHAM_RANK_FIELD, MAGIC_FORMULA_RANK_FIELD, StockRepository
from helper_functions import describe_validation_error, normalize_symbol, parse_limit
from shared.contracts import SearchRequest, Stock

logger = logging.getLogger(__name__)

STOCK_NOT_FOUND = "Stock not found"
STOCK_EXISTS = "Stock already exists"
QUERY_REQUIRED = "Search query is required"


class StockServiceError(Exception):
    """Base error carrying the HTTP status the route should answer with."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StockNotFoundError(StockServiceError):
    status_code = 404

    def __init__(self, message: str = STOCK_NOT_FOUND):
        super().__init__(message)


class StockBadRequestError(StockServiceError):
    status_code = 400


def _validate_stock(payload: Any) -> Stock:
    if not isinstance(payload, dict):
        raise StockBadRequestError("Invalid stock payload: body must be a JSON object")
    try:
        return Stock.model_validate(payload)
    except ValidationError as e:
        raise StockBadRequestError(f"Invalid stock payload: {describe_validation_error(e)}") from e


class StockDirectoryService:
    """One method per endpoint; each performs a single repository call."""

    def __init__(self, repository: StockRepository, default_limit: int = DEFAULT_LIMIT,
                 search_cap: int = SEARCH_RESULT_CAP):
        self.repository = repository
        self.default_limit = default_limit
        self.search_cap = search_cap

    # --- Listing ---

    def list_all(self) -> List[Dict[str, Any]]:
        return self.repository.find_all()

    def list_limited(self, raw_limit: Optional[str]) -> List[Dict[str, Any]]:
        return self.repository.find_limited(parse_limit(raw_limit, self.default_limit))

    def top_magic_formula(self, raw_limit: Optional[str]) -> List[Dict[str, Any]]:
        limit = parse_limit(raw_limit, self.default_limit)
        return self.repository.find_top_ranked(MAGIC_FORMULA_RANK_FIELD, limit)

    def top_graham(self, raw_limit: Optional[str]) -> List[Dict[str, Any]]:
        limit = parse_limit(raw_limit, self.default_limit)
        return self.repository.find_top_ranked(GRAHAM_RANK_FIELD, limit)

    def search(self, body: Any) -> List[Dict[str, Any]]:
        """
        Case-insensitive substring search on symbol or name, capped.

        Raises:
            StockBadRequestError: If `query` is missing, empty or not a string.
        """
        try:
            request = SearchRequest.model_validate(body if isinstance(body, dict) else {})
        except ValidationError:
            raise StockBadRequestError(QUERY_REQUIRED)
        return self.repository.search(request.query, self.search_cap)

    def filter_by_sector(self, sector_name: str) -> List[Dict[str, Any]]:
        return self.repository.find_by_sector(sector_name)

    # --- Single record ---

    def get_by_symbol(self, symbol: str) -> Dict[str, Any]:
        stock = self.repository.find_by_symbol(normalize_symbol(symbol))
        if stock is None:
            raise StockNotFoundError()
        return stock

    def create(self, payload: Any) -> Dict[str, Any]:
        """
        Inserts a new stock with defaults applied.

        The duplicate check uses the symbol exactly as submitted; a concurrent
        insert that slips past it is caught by the unique index.
        """
        stock = _validate_stock(payload)
        if self.repository.find_by_symbol(stock.symbol) is not None:
            raise StockBadRequestError(STOCK_EXISTS)
        try:
            created = self.repository.insert(stock.to_document())
        except DuplicateKeyError:
            raise StockBadRequestError(STOCK_EXISTS)
        logger.info(f"Created stock {stock.symbol}")
        return created

    def update(self, symbol: str, payload: Any) -> Dict[str, Any]:
        """Replaces the whole record for `symbol` with the validated payload."""
        stock = _validate_stock(payload)
        try:
            updated = self.repository.replace_by_symbol(normalize_symbol(symbol), stock.to_document())
        except DuplicateKeyError:
            raise StockBadRequestError(STOCK_EXISTS)
        if updated is None:
            raise StockNotFoundError()
        logger.info(f"Updated stock {normalize_symbol(symbol)}")
        return updated

    def delete(self, symbol: str) -> Dict[str, Any]:
        deleted = self.repository.delete_by_symbol(normalize_symbol(symbol))
        if deleted is None:
            raise StockNotFoundError()
        logger.info(f"Deleted stock {normalize_symbol(symbol)}")
        return {}
