"""
Tests for input validation (schemas.py).

Tests:
1.  Unknown trade rejected
2.  English trade names map to the canonical value
3.  Numbers given as strings rejected
4.  NaN / infinity rejected
5.  Non-positive painting dimensions rejected
6.  Zero dimensions allowed for trades without a calculator
7.  Negative labor rate rejected
8.  Missing required blocks rejected
9.  Error messages name the offending field
"""

import pytest
from pydantic import ValidationError

from meisterki.schemas import OfferInput, Trade, describe_validation_error


def _payload(**overrides):
    data = {
        "trade": "maler",
        "company": {"name": "Malerbetrieb Schmidt GmbH"},
        "customer": {"name": "Familie Weber"},
        "project": {
            "title": "Flur streichen",
            "rooms": [{"name": "Hall", "width_m": 2, "length_m": 5}],
        },
        "laborRatePerHour": 48.5,
    }
    data.update(overrides)
    return data


def test_valid_payload():
    offer_input = OfferInput.model_validate(_payload())
    assert offer_input.trade == Trade.PAINTING
    assert offer_input.labor_rate_per_hour == 48.5
    assert offer_input.margin_percentage is None
    assert offer_input.project.rooms[0].height_m is None


def test_unknown_trade_rejected():
    with pytest.raises(ValidationError):
        OfferInput.model_validate(_payload(trade="schreiner"))


@pytest.mark.parametrize("name, expected", [
    ("painting", Trade.PAINTING),
    ("Electrical", Trade.ELECTRICAL),
    ("plumbing", Trade.PLUMBING),
    ("sanitaer", Trade.PLUMBING),
    ("flooring", Trade.FLOORING),
    ("roofing", Trade.ROOFING),
    ("dach", Trade.ROOFING),
])
def test_trade_names(name, expected):
    assert OfferInput.model_validate(_payload(trade=name)).trade == expected


def test_string_number_rejected():
    with pytest.raises(ValidationError):
        OfferInput.model_validate(_payload(laborRatePerHour="55"))


def test_string_room_dimension_rejected():
    with pytest.raises(ValidationError):
        OfferInput.model_validate(_payload(project={
            "title": "Flur",
            "rooms": [{"name": "Hall", "width_m": "2", "length_m": 5}],
        }))


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_rejected(value):
    with pytest.raises(ValidationError):
        OfferInput.model_validate(_payload(marginPercentage=value))


@pytest.mark.parametrize("room", [
    {"name": "Hall", "width_m": 0, "length_m": 5},
    {"name": "Hall", "width_m": 2, "length_m": -1},
    {"name": "Hall", "width_m": 2, "length_m": 5, "height_m": 0},
])
def test_painting_dimensions_must_be_positive(room):
    with pytest.raises(ValidationError) as exc_info:
        OfferInput.model_validate(_payload(project={"title": "Flur", "rooms": [room]}))
    assert "must be positive" in str(exc_info.value)


def test_zero_dimensions_allowed_without_calculator():
    offer_input = OfferInput.model_validate(_payload(
        trade="boden",
        project={"title": "Keller", "rooms": [{"name": "Cellar", "width_m": 0, "length_m": 0}]},
    ))
    assert offer_input.trade == Trade.FLOORING


def test_negative_labor_rate_rejected():
    with pytest.raises(ValidationError):
        OfferInput.model_validate(_payload(laborRatePerHour=-1))


def test_missing_customer_rejected():
    data = _payload()
    del data["customer"]
    with pytest.raises(ValidationError):
        OfferInput.model_validate(data)


def test_snake_case_names_accepted():
    data = _payload()
    data["labor_rate_per_hour"] = data.pop("laborRatePerHour")
    assert OfferInput.model_validate(data).labor_rate_per_hour == 48.5


def test_error_message_names_field():
    with pytest.raises(ValidationError) as exc_info:
        OfferInput.model_validate(_payload(laborRatePerHour="55"))
    message = describe_validation_error(exc_info.value)
    assert "laborRatePerHour" in message
