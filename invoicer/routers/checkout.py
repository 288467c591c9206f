# invoicer/routers/checkout.py
from typing import Optional

from fastapi import APIRouter, Depends, Header

from ..checkout import CheckoutSessionBuilder
from ..deps import get_checkout_builder, get_profile
from ..models import CheckoutIn, CheckoutOut, Profile

router = APIRouter(tags=["payments"])


@router.post("/create-checkout", response_model=CheckoutOut, response_model_exclude_none=True)
def create_checkout(
    payload: CheckoutIn,
    origin: Optional[str] = Header(default=None),
    profile: Profile = Depends(get_profile),
    builder: CheckoutSessionBuilder = Depends(get_checkout_builder),
):
    return builder.create(payload.jobId, origin=origin, company_id=profile.company_id)
