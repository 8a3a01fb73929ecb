"""
Tests for the offer calculation engine (offer_engine.py + calculators/).

Tests:
1-3.   Painting, one 4 x 5 m room: items, roll-up, descriptions
4-5.   Flooring with one explicit material, default margin and tax
6.     Trade without calculator and no materials -> zero offer
7.     Rooms are ignored for trades without a calculator
8.     Explicit margin / tax override the defaults
9.     Item order: per room labor then paint, materials last
10.    Fixed clock -> identical offers, id and createdAt format
11.    Every money field is already rounded
12.    Subtotal equals the sum of item totals
13.    Input is not modified
14.    Dict input is validated, invalid dict raises OfferCalculationError
15.    Unvalidated model with NaN raises OfferCalculationError
16.    round2 rounds half up
"""

import math
from datetime import datetime, timezone

import pytest

from meisterki.calculators.painting import PaintingCalculator
from meisterki.calculators.registry import get_calculator, has_calculator, list_calculators
from meisterki.money import percent_of, round2
from meisterki.offer_engine import (
    OfferCalculationError,
    OfferEngine,
    format_created_at,
    generate_offer_from_input,
    make_offer_id,
)
from meisterki.schemas import OfferInput, Trade


FIXED_MOMENT = datetime(2026, 10, 19, 12, 0, 0, 123000, tzinfo=timezone.utc)


def _fixed_clock():
    return FIXED_MOMENT


# --- Fixtures ---

def _contacts():
    return {
        "company": {"name": "Malerbetrieb Schmidt GmbH", "email": "info@maler-schmidt.de"},
        "customer": {"name": "Familie Weber", "address": "Gartenweg 3, 50667 Köln"},
    }


def _painting_input(**overrides):
    """One 4 x 5 m living room, default height, 55 EUR/h."""
    data = {
        "trade": "maler",
        **_contacts(),
        "project": {
            "title": "Wohnzimmer streichen",
            "rooms": [{"name": "Living Room", "width_m": 4, "length_m": 5}],
        },
        "laborRatePerHour": 55,
    }
    data.update(overrides)
    return OfferInput.model_validate(data)


def _flooring_input(**overrides):
    """Laminate only, no rooms."""
    data = {
        "trade": "boden",
        **_contacts(),
        "project": {
            "title": "Laminat verlegen",
            "materials": [{"name": "Laminate", "unitPrice": 25, "quantity": 40, "unit": "m²"}],
        },
        "laborRatePerHour": 50,
    }
    data.update(overrides)
    return OfferInput.model_validate(data)


def _two_rooms_with_materials():
    return _painting_input(project={
        "title": "Wohnung komplett",
        "rooms": [
            {"name": "Kitchen", "width_m": 3, "length_m": 3.5},
            {"name": "Hall", "width_m": 1.5, "length_m": 6, "height_m": 2.4},
        ],
        "materials": [
            {"name": "Masking tape", "unitPrice": 3.49, "quantity": 4, "unit": "roll"},
            {"name": "Primer", "unitPrice": 12.5, "quantity": 3, "unit": "bucket"},
        ],
    })


# ============================================================
# Painting
# ============================================================

def test_painting_single_room_items():
    """Labor item then paint item, quantities and totals rounded."""
    offer = generate_offer_from_input(_painting_input())
    assert len(offer.items) == 2

    labor, paint = offer.items
    assert labor.quantity == 4.25
    assert labor.unit == "hours"
    assert labor.unit_price == 55
    assert labor.total == 233.93

    assert paint.quantity == 8.35
    assert paint.unit == "liters"
    assert paint.unit_price == 6
    assert paint.total == 50.1


def test_painting_single_room_rollup():
    """Default 15 % margin and 19 % tax on the rounded subtotal."""
    offer = generate_offer_from_input(_painting_input())
    assert offer.subtotal == 284.03
    assert offer.margin == 42.6
    assert offer.total_before_tax == 326.63
    assert offer.tax == 62.06
    assert offer.total == 388.69
    assert offer.currency == "EUR"


def test_painting_descriptions():
    offer = generate_offer_from_input(_painting_input())
    assert offer.items[0].description == "Painting Living Room: walls & ceiling (66.8 m²)"
    assert offer.items[1].description == "Material: quality paint (8.35 l)"


def test_room_height_is_used_when_given():
    """Higher room -> more wall area -> more hours than the 2.6 m default."""
    low = generate_offer_from_input(_painting_input())
    high = generate_offer_from_input(_painting_input(project={
        "title": "Altbau",
        "rooms": [{"name": "Living Room", "width_m": 4, "length_m": 5, "height_m": 3.2}],
    }))
    assert high.items[0].quantity > low.items[0].quantity
    assert high.items[1].quantity > low.items[1].quantity


# ============================================================
# Materials and other trades
# ============================================================

def test_flooring_material_only():
    offer = generate_offer_from_input(_flooring_input())
    assert len(offer.items) == 1
    item = offer.items[0]
    assert item.description == "Material: Laminate"
    assert item.quantity == 40
    assert item.unit == "m²"
    assert item.unit_price == 25
    assert item.total == 1000.0


def test_flooring_rollup():
    offer = generate_offer_from_input(_flooring_input())
    assert offer.subtotal == 1000.0
    assert offer.margin == 150.0
    assert offer.total_before_tax == 1150.0
    assert offer.tax == 218.5
    assert offer.total == 1368.5


def test_trade_without_items_gives_zero_offer():
    offer = generate_offer_from_input(_flooring_input(
        trade="elektro",
        project={"title": "Steckdosen prüfen"},
    ))
    assert offer.items == []
    assert offer.subtotal == 0
    assert offer.margin == 0
    assert offer.total_before_tax == 0
    assert offer.tax == 0
    assert offer.total == 0


def test_rooms_ignored_without_calculator():
    """Only painting derives items from rooms."""
    offer = generate_offer_from_input(_flooring_input(
        trade="sanitär",
        project={
            "title": "Bad",
            "rooms": [{"name": "Bath", "width_m": 2, "length_m": 3}],
        },
    ))
    assert offer.items == []
    assert offer.total == 0


def test_explicit_margin_and_tax():
    offer = generate_offer_from_input(_flooring_input(marginPercentage=10, taxRatePercentage=7))
    assert offer.margin == 100.0
    assert offer.total_before_tax == 1100.0
    assert offer.tax == 77.0
    assert offer.total == 1177.0


def test_zero_margin_is_not_replaced_by_default():
    offer = generate_offer_from_input(_flooring_input(marginPercentage=0))
    assert offer.margin == 0
    assert offer.total_before_tax == 1000.0


def test_engine_defaults_are_configurable():
    engine = OfferEngine(clock=_fixed_clock, margin_default=20, tax_default=7, currency="CHF")
    offer = engine.build_offer(_flooring_input())
    assert offer.margin == 200.0
    assert offer.tax == 84.0
    assert offer.currency == "CHF"


# ============================================================
# Structure
# ============================================================

def test_item_order():
    """Per room labor then paint, in room order, explicit materials last."""
    offer = generate_offer_from_input(_two_rooms_with_materials())
    descriptions = [item.description for item in offer.items]
    assert len(descriptions) == 6
    assert descriptions[0].startswith("Painting Kitchen")
    assert descriptions[1].startswith("Material: quality paint")
    assert descriptions[2].startswith("Painting Hall")
    assert descriptions[3].startswith("Material: quality paint")
    assert descriptions[4] == "Material: Masking tape"
    assert descriptions[5] == "Material: Primer"


def test_fixed_clock_is_deterministic():
    first = generate_offer_from_input(_two_rooms_with_materials(), clock=_fixed_clock)
    second = generate_offer_from_input(_two_rooms_with_materials(), clock=_fixed_clock)
    assert first.to_json() == second.to_json()


def test_id_and_created_at_format():
    offer = generate_offer_from_input(_painting_input(), clock=_fixed_clock)
    assert offer.id == "OF-1792411200123"
    assert offer.created_at == "2026-10-19T12:00:00.123Z"
    assert make_offer_id(FIXED_MOMENT) == offer.id
    assert format_created_at(FIXED_MOMENT) == offer.created_at


def test_money_fields_are_rounded():
    offer = generate_offer_from_input(_two_rooms_with_materials())
    values = [offer.subtotal, offer.margin, offer.total_before_tax, offer.tax, offer.total]
    values += [item.total for item in offer.items]
    values += [item.quantity for item in offer.items]
    for value in values:
        assert round2(value) == value


def test_subtotal_is_sum_of_item_totals():
    offer = generate_offer_from_input(_two_rooms_with_materials())
    assert offer.subtotal == round2(sum(item.total for item in offer.items))
    assert offer.margin == percent_of(offer.subtotal, 15)
    assert offer.total_before_tax == round2(offer.subtotal + offer.margin)
    assert offer.total == round2(offer.total_before_tax + offer.tax)


def test_input_not_modified():
    offer_input = _two_rooms_with_materials()
    before = offer_input.model_dump()
    offer = generate_offer_from_input(offer_input)
    assert offer_input.model_dump() == before
    assert offer.input.model_dump() == before


def test_output_uses_wire_names():
    data = generate_offer_from_input(_painting_input()).to_json()
    assert "createdAt" in data
    assert "totalBeforeTax" in data
    assert "unitPrice" in data["items"][0]
    assert data["input"]["laborRatePerHour"] == 55
    assert data["input"]["trade"] == "maler"


# ============================================================
# Bad input
# ============================================================

def test_dict_input_is_validated():
    data = _flooring_input().model_dump(by_alias=True, mode="json")
    offer = generate_offer_from_input(data)
    assert offer.total == 1368.5


def test_invalid_dict_raises():
    data = _flooring_input().model_dump(by_alias=True, mode="json")
    data["trade"] = "schreiner"
    with pytest.raises(OfferCalculationError):
        generate_offer_from_input(data)


def test_unvalidated_nan_raises():
    offer_input = _flooring_input().model_copy(update={"labor_rate_per_hour": math.nan})
    with pytest.raises(OfferCalculationError, match="laborRatePerHour"):
        generate_offer_from_input(offer_input)


def test_unvalidated_string_quantity_raises():
    offer_input = _flooring_input()
    offer_input.project.materials[0] = offer_input.project.materials[0].model_copy(
        update={"quantity": "40"}
    )
    with pytest.raises(OfferCalculationError, match="quantity"):
        generate_offer_from_input(offer_input)


def test_not_an_offer_input_raises():
    with pytest.raises(OfferCalculationError):
        generate_offer_from_input(["maler"])


# ============================================================
# Rounding and registry
# ============================================================

def test_round2_half_up():
    assert round2(0.125) == 0.13
    assert round2(-0.125) == -0.12
    assert round2(233.93333) == 233.93
    assert round2(10) == 10
    assert round2(round2(8.350000000000001)) == 8.35


def test_registry():
    assert has_calculator(Trade.PAINTING)
    assert not has_calculator(Trade.FLOORING)
    assert isinstance(get_calculator(Trade.PAINTING), PaintingCalculator)
    assert "maler" in list_calculators()
    with pytest.raises(ValueError):
        get_calculator(Trade.ROOFING)
