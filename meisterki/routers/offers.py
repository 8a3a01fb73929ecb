"""
Offer endpoints.

POST /api/offers/generate       — calculate an offer (no login needed)
POST /api/offers/export-pdf     — render an offer to <generated>/<id>.pdf
POST /api/offers                — calculate and save an offer for the current user
GET  /api/offers/mine           — saved offers of the current user, newest first
GET  /api/offers/{record_id}    — one saved offer
GET  /api/offers/{record_id}/pdf — download a saved offer as PDF

The PDF download accepts auth via:
1. Authorization: Bearer <token> header (standard)
2. ?token=<jwt> query param (for window.open / direct download links)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import Response
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import ValidationError

from ..auth import get_current_user, get_user_store, security, user_from_access_token
from ..offer_engine import OfferCalculationError, OfferEngine
from ..pdf_generator import export_offer_to_pdf, generate_offer_pdf
from ..schemas import Offer, OfferInput, describe_validation_error
from ..storage import OfferStore, StorageError, UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/offers", tags=["offers"])


def get_offer_engine() -> OfferEngine:
    """Engine with margin, tax and currency defaults from settings."""
    return OfferEngine()


def get_offer_store() -> OfferStore:
    return OfferStore()


def _parse_offer_input(payload: dict) -> OfferInput:
    try:
        return OfferInput.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=describe_validation_error(e))


def _calculate(payload: dict, engine: OfferEngine) -> Offer:
    """Validate, then run the engine. Invalid input never reaches the engine."""
    offer_input = _parse_offer_input(payload)
    try:
        return engine.build_offer(offer_input)
    except OfferCalculationError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _record_summary(record: dict) -> dict:
    """Saved-offer record to list entry."""
    offer = record.get("offer", {})
    offer_input = offer.get("input", {})
    return {
        "record_id": record.get("record_id"),
        "offer_id": offer.get("id"),
        "created_at": offer.get("createdAt"),
        "saved_at": record.get("saved_at"),
        "trade": offer_input.get("trade"),
        "project_title": offer_input.get("project", {}).get("title"),
        "customer_name": offer_input.get("customer", {}).get("name"),
        "total": offer.get("total"),
        "currency": offer.get("currency"),
    }


def _load_owned_record(record_id: str, user: dict, store: OfferStore) -> dict:
    try:
        record = store.get(record_id)
    except StorageError:
        record = None
    if not record:
        raise HTTPException(status_code=404, detail="Offer not found")
    if record.get("owner_id") != user["id"]:
        raise HTTPException(status_code=403, detail="Not your offer")
    return record


# --- Stateless endpoints ---

@router.post("/generate")
def generate_offer(
    payload: dict = Body(...),
    engine: OfferEngine = Depends(get_offer_engine),
):
    """Calculate an offer from an OfferInput body. Nothing is stored."""
    return _calculate(payload, engine).to_json()


@router.post("/export-pdf")
def export_pdf(payload: dict = Body(...)):
    """
    Render an Offer body to a PDF file under the generated directory.
    Returns the public path the file is served from.
    """
    try:
        offer = Offer.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=describe_validation_error(e))

    try:
        file_path = export_offer_to_pdf(offer)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"ok": True, "path": f"/generated/{file_path.name}"}


# --- Saved offers ---

@router.post("")
def save_offer(
    payload: dict = Body(...),
    engine: OfferEngine = Depends(get_offer_engine),
    store: OfferStore = Depends(get_offer_store),
    current_user: dict = Depends(get_current_user),
):
    """Calculate an offer and save it for the current user."""
    offer = _calculate(payload, engine)
    record = store.save(offer, owner_id=current_user["id"])
    return {"record_id": record["record_id"], "offer": record["offer"]}


@router.get("/mine")
def list_my_offers(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    store: OfferStore = Depends(get_offer_store),
    current_user: dict = Depends(get_current_user),
):
    """List saved offers for the authenticated user, newest first."""
    records = store.list_for_owner(current_user["id"])
    return [_record_summary(r) for r in records[skip:skip + limit]]


@router.get("/{record_id}")
def get_offer(
    record_id: str,
    store: OfferStore = Depends(get_offer_store),
    current_user: dict = Depends(get_current_user),
):
    """Full saved offer."""
    record = _load_owned_record(record_id, current_user, store)
    return {
        "record_id": record["record_id"],
        "saved_at": record.get("saved_at"),
        "offer": record["offer"],
    }


@router.get("/{record_id}/pdf")
def download_pdf(
    record_id: str,
    token: Optional[str] = Query(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: OfferStore = Depends(get_offer_store),
    users: UserStore = Depends(get_user_store),
):
    """
    Generate and download a saved offer as PDF.

    Auth: Bearer header OR ?token= query param.
    Returns: application/pdf
    """
    raw_token = token or (credentials.credentials if credentials else None)
    if not raw_token:
        raise HTTPException(status_code=401, detail="Authentication required. Pass ?token= parameter.")
    current_user = user_from_access_token(raw_token, users)

    record = _load_owned_record(record_id, current_user, store)
    offer = Offer.model_validate(record["offer"])
    pdf_bytes = generate_offer_pdf(offer)

    filename = f"Offer-{offer.id}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )
