"""Pricing API router: custom VPS rate table and quotes."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from hostpanel.db.session import get_db
from hostpanel.schemas.schemas import MessageResponse, QuoteOut
from hostpanel.pricing.engine import PricingConfig, VpsConfiguration
from hostpanel.services.pricing_service import pricing_service
from hostpanel.core.identity import CallerIdentity
from hostpanel.core.middleware import request_origin
from hostpanel.core.security import require_permission

router = APIRouter(tags=["pricing"])


@router.get("/settings/custom-vps-pricing")
async def get_custom_vps_pricing(db: Session = Depends(get_db)):
    """Current rate table (public)."""
    return {"pricing": pricing_service.get_pricing(db).model_dump(mode="json")}


@router.put("/settings/custom-vps-pricing", response_model=MessageResponse)
async def save_custom_vps_pricing(
    body: PricingConfig,
    request: Request,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_permission("pricing.edit")),
):
    """Replace the whole rate table."""
    pricing_service.save_pricing(db, body, caller, origin=request_origin(request))
    return MessageResponse(message="Custom VPS pricing saved")


@router.post("/pricing/custom-vps/quote", response_model=QuoteOut)
async def quote_custom_vps(body: VpsConfiguration, db: Session = Depends(get_db)):
    """Validate a configuration and price it. Amounts are rounded for display."""
    pricing = pricing_service.get_pricing(db)
    quote = pricing_service.quote(db, body, pricing=pricing)
    datacenter = pricing.datacenter(body.datacenter)
    return QuoteOut(
        **quote.rounded(),
        datacenter=datacenter.model_dump() if datacenter else None,
    )
