"""
Offer Calculation Engine.

Turns a validated OfferInput into an itemized Offer.
Pure math, no I/O. Room-derived items come from the trade calculator,
explicit materials are priced as given, then everything rolls up into
subtotal, margin, pre-tax total, tax and grand total.

Every derived money value is rounded with money.round2 at the step where it
is computed.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError

from .calculators.registry import get_calculator, has_calculator
from .config import settings
from .money import percent_of, resolve_pct, round2
from .schemas import Offer, OfferInput, OfferItem, Trade, describe_validation_error

logger = logging.getLogger(__name__)

OFFER_ID_PREFIX = "OF-"


class OfferCalculationError(ValueError):
    """Input reached the engine in a shape it cannot price."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_created_at(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def make_offer_id(moment: datetime) -> str:
    """Time-based id, unique only to the millisecond."""
    millis = (moment.astimezone(timezone.utc) - _EPOCH) // timedelta(milliseconds=1)
    return f"{OFFER_ID_PREFIX}{millis}"


def effective_rates(
    offer_input: OfferInput,
    margin_default: Optional[float] = None,
    tax_default: Optional[float] = None,
) -> Tuple[float, float]:
    """
    Margin and tax percentages an offer is priced with.
    Omitted defaults fall back to settings.MARGIN_DEFAULT / settings.TAX_DEFAULT,
    read at call time. Also used for the percentage labels on the PDF.
    """
    if margin_default is None:
        margin_default = settings.MARGIN_DEFAULT
    if tax_default is None:
        tax_default = settings.TAX_DEFAULT
    return (
        resolve_pct(offer_input.margin_percentage, margin_default),
        resolve_pct(offer_input.tax_rate_percentage, tax_default),
    )


class OfferEngine:
    """
    Builds Offers from OfferInputs.
    Holds no per-request state, one instance can serve every request.
    Defaults left as None come from settings when an offer is built.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        margin_default: Optional[float] = None,
        tax_default: Optional[float] = None,
        currency: Optional[str] = None,
    ):
        self.clock = clock or _utc_now
        self.margin_default = margin_default
        self.tax_default = tax_default
        self.currency = currency

    def build_offer(self, offer_input) -> Offer:
        """
        Computes the full offer.

        Args:
            offer_input: OfferInput, or a plain dict in wire format which is
                validated first.

        Returns:
            Offer with items in input order (per room: labor, then paint;
            explicit materials after all rooms).

        Raises:
            OfferCalculationError if the input fails the shape check.
        """
        offer_input = self._check_input(offer_input)

        items = self._room_items(offer_input) + self._material_items(offer_input)

        margin_pct, tax_pct = effective_rates(offer_input, self.margin_default, self.tax_default)

        subtotal = self._calculate_subtotal(items)
        margin = percent_of(subtotal, margin_pct)
        total_before_tax = round2(subtotal + margin)
        tax = percent_of(total_before_tax, tax_pct)
        total = round2(total_before_tax + tax)

        moment = self.clock()
        offer = Offer(
            id=make_offer_id(moment),
            created_at=format_created_at(moment),
            input=offer_input,
            items=items,
            subtotal=subtotal,
            margin=margin,
            total_before_tax=total_before_tax,
            tax=tax,
            total=total,
            currency=self.currency or settings.CURRENCY,
        )
        logger.debug(
            "Offer %s: trade=%s items=%d subtotal=%.2f total=%.2f",
            offer.id, offer_input.trade.value, len(items), subtotal, total,
        )
        return offer

    def _room_items(self, offer_input: OfferInput) -> List[OfferItem]:
        """Room-derived items, only for trades with a calculator."""
        if not offer_input.project.rooms or not has_calculator(offer_input.trade):
            return []
        return get_calculator(offer_input.trade).calculate(offer_input)

    def _material_items(self, offer_input: OfferInput) -> List[OfferItem]:
        """One item per explicit material, quantity and unit as given."""
        items = []
        for m in offer_input.project.materials or []:
            items.append(OfferItem(
                description=f"Material: {m.name}",
                quantity=m.quantity,
                unit=m.unit,
                unit_price=m.unit_price,
                total=round2(m.unit_price * m.quantity),
            ))
        return items

    def _calculate_subtotal(self, items: List[OfferItem]) -> float:
        """Sum of item totals (each already rounded)."""
        return round2(sum((item.total for item in items), 0.0))

    def _check_input(self, offer_input) -> OfferInput:
        """
        Validate dicts, and re-check every number the engine uses.
        OfferInput.model_construct() skips validation, so a model is not
        trusted blindly either.
        """
        if isinstance(offer_input, dict):
            try:
                offer_input = OfferInput.model_validate(offer_input)
            except ValidationError as e:
                raise OfferCalculationError(describe_validation_error(e)) from e

        if not isinstance(offer_input, OfferInput):
            raise OfferCalculationError(
                f"Expected OfferInput, got {type(offer_input).__name__}"
            )
        if not isinstance(offer_input.trade, Trade):
            raise OfferCalculationError(f"Unknown trade: {offer_input.trade!r}")

        numbers = {
            "laborRatePerHour": offer_input.labor_rate_per_hour,
            "marginPercentage": offer_input.margin_percentage,
            "taxRatePercentage": offer_input.tax_rate_percentage,
        }
        for i, room in enumerate(offer_input.project.rooms or []):
            numbers[f"rooms[{i}].width_m"] = room.width_m
            numbers[f"rooms[{i}].length_m"] = room.length_m
            numbers[f"rooms[{i}].height_m"] = room.height_m
        for i, m in enumerate(offer_input.project.materials or []):
            numbers[f"materials[{i}].unitPrice"] = m.unit_price
            numbers[f"materials[{i}].quantity"] = m.quantity

        for name, value in numbers.items():
            if value is None and not name.endswith(("Percentage", "height_m")):
                raise OfferCalculationError(f"{name} is required")
            if value is not None and not _is_finite_number(value):
                raise OfferCalculationError(f"{name} must be a finite number, got {value!r}")

        if offer_input.labor_rate_per_hour < 0:
            raise OfferCalculationError(
                f"laborRatePerHour must not be negative, got {offer_input.labor_rate_per_hour}"
            )
        return offer_input


def _is_finite_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


_default_engine = OfferEngine()


def generate_offer_from_input(offer_input, clock: Optional[Callable[[], datetime]] = None) -> Offer:
    """Module-level entry point, defaults from settings (15% margin, 19% tax, EUR unless configured)."""
    if clock is None:
        return _default_engine.build_offer(offer_input)
    return OfferEngine(clock=clock).build_offer(offer_input)
