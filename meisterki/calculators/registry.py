"""
Calculator registry — maps trades to calculator classes.

Only painting derives items from room geometry. Other trades price their
explicit materials only, until they get a calculator of their own.
"""

from ..schemas import Trade
from .base import BaseTradeCalculator
from .painting import PaintingCalculator

CALCULATOR_REGISTRY: dict[Trade, type] = {
    Trade.PAINTING: PaintingCalculator,
}


def get_calculator(trade: Trade) -> BaseTradeCalculator:
    """Returns an instance of the calculator for a trade, or raises ValueError."""
    if trade not in CALCULATOR_REGISTRY:
        raise ValueError(
            f"No calculator registered for trade: {trade.value}. "
            f"Available: {[t.value for t in CALCULATOR_REGISTRY]}"
        )
    return CALCULATOR_REGISTRY[trade]()


def has_calculator(trade: Trade) -> bool:
    """Check if a calculator exists for a trade."""
    return trade in CALCULATOR_REGISTRY


def list_calculators() -> list[str]:
    """List all trades with a registered calculator."""
    return [t.value for t in CALCULATOR_REGISTRY]
