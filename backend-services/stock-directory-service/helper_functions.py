# stock-directory-service/helper_functions.py
import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import ValidationError

from config import DEFAULT_LIMIT
from shared.contracts import ApiEnvelope

logger = logging.getLogger(__name__)

_UNION_MEMBER_TAGS = ("int", "float")

# Largest value BSON can encode as a limit (signed 64-bit)
_MAX_LIMIT = 2 ** 63 - 1


def parse_limit(raw: Optional[str], default: int = DEFAULT_LIMIT) -> int:
    """
    Parses a limit path/query parameter.

    Anything that is not a plain ASCII positive integer that fits in int64
    ("abc", "0", "-3", "1_000", 2**63) falls back to the default. A limit of 0
    would mean "no limit" to MongoDB.
    """
    if raw is None:
        return default
    text = str(raw).strip()
    if not (text.isascii() and text.isdigit()):
        logger.debug(f"Non-numeric limit '{raw}', using default {default}")
        return default
    value = int(text)
    return value if 0 < value <= _MAX_LIMIT else default


def normalize_symbol(symbol: str) -> str:
    """Canonical form used for symbol-keyed lookups and mutations."""
    return (symbol or "").upper()


def serialize_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Makes a MongoDB document JSON safe (ObjectId -> hex string), recursively."""
    out = {}
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, dict):
            out[key] = serialize_document(value)
        else:
            out[key] = value
    return out


def serialize_documents(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_document(d) for d in docs]


def describe_validation_error(e: ValidationError) -> str:
    """First offending field of a pydantic error, as 'a.b: message'."""
    first = e.errors()[0]
    # Union members ("int", "float") show up as trailing location parts
    parts = [str(part) for part in first.get("loc", ()) if part not in _UNION_MEMBER_TAGS]
    location = ".".join(parts) or "body"
    return f"{location}: {first.get('msg', 'invalid value')}"


def list_envelope(docs: List[Dict[str, Any]]) -> Dict[str, Any]:
    data = serialize_documents(docs)
    return ApiEnvelope(success=True, count=len(data), data=data).to_json()


def data_envelope(data: Any) -> Dict[str, Any]:
    return ApiEnvelope(success=True, data=data).to_json()


def error_envelope(message: str) -> Dict[str, Any]:
    return ApiEnvelope(success=False, error=message).to_json()
