"""Cost-basis normalization and position aggregation.

Normalization is total: it never raises, and it drops every entry whose
price is not a finite positive number or whose size (``qty`` or ``usd``)
is missing, non-finite, or non-positive.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence

from Price_Pulse.models.portfolio import CostBasisLot, LotConfig, Position

logger = logging.getLogger(__name__)


def _positive(value: float | None) -> float | None:
    """Return *value* if it is a finite positive number, else None."""
    if value is None or not math.isfinite(value) or value <= 0:
        return None
    return value


def normalize_lots(entries: Iterable[LotConfig]) -> list[CostBasisLot]:
    """Resolve configured lots into lots with both quantity and USD cost.

    ``qty`` takes precedence: when it is present, the cost is ``qty * price``
    and ``usd`` is ignored. Otherwise the quantity is ``usd / price``.

    Args:
        entries: Raw lot entries from the settings file.

    Returns:
        Valid lots in their original order. Possibly empty.
    """
    lots: list[CostBasisLot] = []
    for entry in entries:
        price = _positive(entry.price)
        if price is None:
            logger.debug("Dropping lot with invalid price: %s", entry)
            continue

        if entry.qty is not None:
            quantity = _positive(entry.qty)
            if quantity is None:
                logger.debug("Dropping lot with invalid qty: %s", entry)
                continue
            cost_usd = quantity * price
        elif entry.usd is not None:
            cost = _positive(entry.usd)
            if cost is None:
                logger.debug("Dropping lot with invalid usd: %s", entry)
                continue
            cost_usd = cost
            quantity = cost / price
        else:
            logger.debug("Dropping lot with neither qty nor usd: %s", entry)
            continue

        lots.append(CostBasisLot(quantity=quantity, cost_usd=cost_usd, price=price, date=entry.date))
    return lots


def compute_position(
    lots: Sequence[CostBasisLot],
    live_quantity: float | None = None,
) -> Position:
    """Aggregate lots into a position, optionally overriding the quantity.

    Args:
        lots: Normalized cost-basis lots.
        live_quantity: On-chain balance; used instead of the lot sum when it is
            a finite positive number.

    Returns:
        Position whose ``average_cost`` is None when the quantity is zero.
    """
    invested = sum(lot.cost_usd for lot in lots)
    lot_quantity = sum(lot.quantity for lot in lots)

    override = _positive(live_quantity)
    quantity = override if override is not None else lot_quantity
    average_cost = invested / quantity if quantity > 0 else None

    return Position(
        lot_count=len(lots),
        total_quantity=quantity,
        total_invested_usd=invested,
        average_cost=average_cost,
        uses_live_quantity=override is not None,
    )
