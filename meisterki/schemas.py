from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic.types import AllowInfNan, Strict
from typing import Annotated, Optional, List
import enum

# Finite real number. Strings like "4" are rejected instead of coerced.
StrictNumber = Annotated[float, Strict(), AllowInfNan(False)]


class Trade(str, enum.Enum):
    PAINTING = "maler"
    ELECTRICAL = "elektro"
    PLUMBING = "sanitär"
    FLOORING = "boden"
    ROOFING = "dach"


# English names are accepted on input and stored as the canonical value.
TRADE_ALIASES = {
    "painting": Trade.PAINTING,
    "electrical": Trade.ELECTRICAL,
    "plumbing": Trade.PLUMBING,
    "sanitaer": Trade.PLUMBING,
    "flooring": Trade.FLOORING,
    "roofing": Trade.ROOFING,
}


class ContactInfo(BaseModel):
    name: str
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class Room(BaseModel):
    name: str
    width_m: StrictNumber
    length_m: StrictNumber
    height_m: Optional[StrictNumber] = None


class Material(BaseModel):
    name: str
    unit_price: StrictNumber = Field(..., alias="unitPrice")
    quantity: StrictNumber
    unit: str

    class Config:
        populate_by_name = True


class Project(BaseModel):
    title: str
    description: Optional[str] = None
    rooms: Optional[List[Room]] = None
    materials: Optional[List[Material]] = None
    notes: Optional[str] = None


class OfferInput(BaseModel):
    trade: Trade
    company: ContactInfo
    customer: ContactInfo
    project: Project
    labor_rate_per_hour: StrictNumber = Field(..., alias="laborRatePerHour", ge=0)
    margin_percentage: Optional[StrictNumber] = Field(None, alias="marginPercentage")
    tax_rate_percentage: Optional[StrictNumber] = Field(None, alias="taxRatePercentage")

    class Config:
        populate_by_name = True

    @field_validator("trade", mode="before")
    @classmethod
    def _normalize_trade(cls, value):
        if isinstance(value, str):
            return TRADE_ALIASES.get(value.strip().lower(), value)
        return value

    @model_validator(mode="after")
    def _check_room_dimensions(self):
        """Painting derives areas from rooms, so every dimension must be positive."""
        if self.trade != Trade.PAINTING or not self.project.rooms:
            return self
        for room in self.project.rooms:
            dims = {"width_m": room.width_m, "length_m": room.length_m, "height_m": room.height_m}
            for key, val in dims.items():
                if val is not None and val <= 0:
                    raise ValueError(f"Room '{room.name}': {key} must be positive, got {val}")
        return self


class OfferItem(BaseModel):
    description: str
    quantity: float
    unit: str
    unit_price: float = Field(..., alias="unitPrice")
    total: float

    class Config:
        populate_by_name = True


class Offer(BaseModel):
    id: str
    created_at: str = Field(..., alias="createdAt")
    input: OfferInput
    items: List[OfferItem] = []
    subtotal: float
    margin: float
    total_before_tax: float = Field(..., alias="totalBeforeTax")
    tax: float
    total: float
    currency: str

    class Config:
        populate_by_name = True

    def to_json(self) -> dict:
        """Wire representation: original field names, optional blanks omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ReportRequest(BaseModel):
    notes: Optional[str] = None


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one client-facing message."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)
