"""
Abstract base class for all trade calculators.

Input: validated OfferInput (schemas.OfferInput)
Output: ordered list of OfferItem, one group per room, in room order
"""

from abc import ABC, abstractmethod
from typing import List

from ..money import round2
from ..schemas import OfferInput, OfferItem, Room


class BaseTradeCalculator(ABC):
    """All trade calculators inherit from this."""

    DEFAULT_ROOM_HEIGHT_M = 2.6

    @abstractmethod
    def calculate(self, offer_input: OfferInput) -> List[OfferItem]:
        """
        Takes the validated offer input.
        Returns the room-derived items for this trade, in room order.
        """
        pass

    # --- Helper methods for all calculators ---

    def room_height(self, room: Room) -> float:
        """Room height, falling back to the standard ceiling height."""
        return room.height_m if room.height_m is not None else self.DEFAULT_ROOM_HEIGHT_M

    def wall_area(self, room: Room) -> float:
        """Area of all four walls: perimeter x height."""
        return 2 * (room.width_m + room.length_m) * self.room_height(room)

    def ceiling_area(self, room: Room) -> float:
        return room.width_m * room.length_m

    def make_item(self, description: str, quantity: float, unit: str,
                  unit_price: float, total: float) -> OfferItem:
        """Build an OfferItem. Callers pass the unrounded total; it is rounded here."""
        return OfferItem(
            description=description,
            quantity=quantity,
            unit=unit,
            unit_price=unit_price,
            total=round2(total),
        )
