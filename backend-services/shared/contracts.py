# backend-services/shared/contracts.py
"""
This module defines the Pydantic models that serve as the formal data contracts
for the stock directory: the stored stock record, its embedded ranking
sub-records, the search request body and the uniform response envelope.

Every field of a stock except `symbol` and `name` has a default, so a payload
that omits a field (or a whole sub-record) is completed at the boundary before
it reaches the database.
"""

from typing import Any, Optional, Union, TypeAlias
from pydantic import BaseModel, ConfigDict, Field

Number: TypeAlias = Union[int, float]
"""Stored numeric value; ints stay ints so ranks round-trip unchanged."""

# --- Contract 1: Graham valuation properties ---
class GrahamProps(BaseModel):
    """Benjamin Graham style valuation metrics. All zero when unknown."""
    graham_score: Number = 0
    current_ratio: Number = 0
    debt_to_equity: Number = 0
    book_value: Number = 0
    graham_rank: Number = 0 # 1 is the best rank
    eps: Number = 0
    intrinsic_value: Number = 0


# --- Contract 2: Magic formula properties ---
class MagicFormulaProps(BaseModel):
    """Greenblatt magic formula inputs and the precomputed rank."""
    roa: Number = 0
    magic_formula_rank: Number = 0 # 1 is the best rank


# --- Contract 3: Stock ---
class Stock(BaseModel):
    """
    A single stock record, keyed by its ticker symbol.

    Unknown keys in an incoming payload (including a client-sent `_id`) are
    dropped, mirroring a strict document schema.
    """
    model_config = ConfigDict(extra='ignore')

    symbol: str = Field(..., min_length=1, description="Ticker symbol, e.g., AAPL")
    name: str = Field(..., min_length=1)
    price: Number = 0
    pe: Number = 0
    marketCap: Number = 0
    description: str = ""
    logo_url: str = ""
    sector: str = ""
    graham_props: GrahamProps = Field(default_factory=GrahamProps)
    magic_formula_props: MagicFormulaProps = Field(default_factory=MagicFormulaProps)

    def to_document(self) -> dict:
        """Plain dict ready to be written to MongoDB."""
        return self.model_dump()


# --- Contract 4: SearchRequest ---
class SearchRequest(BaseModel):
    """Body of POST /api/stocks/search."""
    query: str = Field(..., min_length=1)


# --- Contract 5: ApiEnvelope ---
class ApiEnvelope(BaseModel):
    """Uniform wrapper for every response produced by the service."""
    success: bool
    data: Optional[Any] = None
    count: Optional[int] = None
    error: Optional[str] = None

    def to_json(self) -> dict:
        # Absent members are omitted rather than rendered as null
        return self.model_dump(exclude_none=True)
