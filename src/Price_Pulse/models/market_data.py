"""Market data models: price samples, stream updates, and 24h ranges.

Prices are plain floats. Non-finite values never reach these models; the
buffer and the providers drop them first.
"""

import datetime

from pydantic import BaseModel, ConfigDict


class Sample(BaseModel):
    """A single observed price.

    Frozen because an observation should never be mutated after creation.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime.datetime
    price: float


class PriceUpdate(BaseModel):
    """A price accepted from a chain link, queued for the next tick."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime.datetime
    price: float
    source: str


class PriceRange(BaseModel):
    """High/low pair over a window. Both sides are None when no data exists."""

    model_config = ConfigDict(frozen=True)

    high: float | None = None
    low: float | None = None


class StatsWindow(BaseModel):
    """Authoritative 24h high/low reported by an exchange stats endpoint.

    Takes precedence over buffer-derived values when present.
    """

    model_config = ConfigDict(frozen=True)

    high: float | None = None
    low: float | None = None
    fetched_at: datetime.datetime | None = None
