# backend-services/stock-directory-service/config.py
"""
Configuration for the stock directory service.

Settings are read from the process environment (optionally seeded from a
`.env` file) once, at startup, and handed to the app factory. Nothing else in
the service reads os.environ.
"""

import os
from typing import List, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_LIMIT = 500
SEARCH_RESULT_CAP = 20
DEFAULT_DB_NAME = "stock_directory"
DEFAULT_COLLECTION = "stocks"


def _db_name_from_mongo_uri(mongo_uri: str, default_db: str = DEFAULT_DB_NAME) -> str:
    try:
        parsed = urlparse(mongo_uri)
        path = (parsed.path or "").lstrip("/")
        return path if path else default_db
    except ValueError:
        return default_db


def _split_origins(raw: str) -> List[str]:
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


class Settings(BaseModel):
    """Service configuration value object."""
    port: int = 3007
    mongo_uri: str = "mongodb://mongodb:27017/stock_directory"
    db_name: str = DEFAULT_DB_NAME
    collection_name: str = DEFAULT_COLLECTION
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    server_selection_timeout_ms: int = 5000

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """
        Builds settings from environment variables.

        DB_URL is the primary connection string; MONGO_URI is accepted as a
        fallback so the service can share compose files with its siblings.
        """
        load_dotenv(env_file)
        mongo_uri = os.getenv("DB_URL") or os.getenv("MONGO_URI") or cls.model_fields["mongo_uri"].default
        return cls(
            port=int(os.getenv("PORT", 3007)),
            mongo_uri=mongo_uri,
            db_name=os.getenv("DB_NAME") or _db_name_from_mongo_uri(mongo_uri),
            collection_name=os.getenv("STOCKS_COLLECTION", DEFAULT_COLLECTION),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "*")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_dir=os.getenv("LOG_DIR") or None,
            server_selection_timeout_ms=int(os.getenv("MONGO_TIMEOUT_MS", 5000)),
        )
