from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from quote_dashboard.utils.validators import utc_now_iso


class Provenance(str, Enum):
    LIVE = "live"
    CACHED = "cached"
    FALLBACK = "fallback"


class Quote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float
    change: float
    change_percent: float
    volume: int
    market_cap: int | None = None
    data_source: Provenance = Provenance.LIVE
    timestamp: str = Field(default_factory=utc_now_iso)

    def as_source(self, source: Provenance) -> "Quote":
        if self.data_source == source:
            return self
        return self.model_copy(update={"data_source": source})


class ApiEnvelope(BaseModel):
    schema_version: str
    data: Any
    message: str
    data_source: str
    timestamp: str = Field(default_factory=utc_now_iso)
