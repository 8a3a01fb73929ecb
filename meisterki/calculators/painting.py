"""
Painting (maler) calculator.

Each room yields two items, labor first:
- Labor: walls, ceiling and prep time at the productivity rates below
- Paint: total surface / coverage, priced per liter
"""

from typing import List

from ..money import format_number, round2
from ..schemas import OfferInput, OfferItem
from .base import BaseTradeCalculator


class PaintingCalculator(BaseTradeCalculator):

    # Productivity: area units (m²) per labor hour
    WALL_AREA_PER_HOUR = 20.0
    CEILING_AREA_PER_HOUR = 25.0
    PREP_AREA_PER_HOUR = 60.0     # prep allowance over walls + ceiling

    # Paint
    PAINT_COVERAGE_PER_LITER = 8.0
    PAINT_PRICE_PER_LITER = 6.0

    LABOR_UNIT = "hours"
    PAINT_UNIT = "liters"

    def calculate(self, offer_input: OfferInput) -> List[OfferItem]:
        items = []
        rooms = offer_input.project.rooms or []
        rate = offer_input.labor_rate_per_hour

        for room in rooms:
            wall = self.wall_area(room)
            ceiling = self.ceiling_area(room)
            surface = wall + ceiling

            hours = self.labor_hours(wall, ceiling)
            items.append(self.make_item(
                description=f"Painting {room.name}: walls & ceiling ({format_number(round2(surface))} m²)",
                quantity=round2(hours),
                unit=self.LABOR_UNIT,
                unit_price=rate,
                total=hours * rate,
            ))

            liters = self.paint_liters(surface)
            items.append(self.make_item(
                description=f"Material: quality paint ({format_number(round2(liters))} l)",
                quantity=round2(liters),
                unit=self.PAINT_UNIT,
                unit_price=self.PAINT_PRICE_PER_LITER,
                total=liters * self.PAINT_PRICE_PER_LITER,
            ))

        return items

    def labor_hours(self, wall_area: float, ceiling_area: float) -> float:
        """Unrounded labor hours for one room."""
        wall_hours = wall_area / self.WALL_AREA_PER_HOUR
        ceiling_hours = ceiling_area / self.CEILING_AREA_PER_HOUR
        prep_hours = (wall_area + ceiling_area) / self.PREP_AREA_PER_HOUR
        return wall_hours + ceiling_hours + prep_hours

    def paint_liters(self, surface_area: float) -> float:
        return surface_area / self.PAINT_COVERAGE_PER_LITER
