# invoicer/routers/connect.py
from typing import Optional

from fastapi import APIRouter, Depends, Header

from ..auth import CurrentUser
from ..connect import ConnectOnboarding
from ..deps import get_current_user, get_onboarding
from ..models import ConnectOut, StripeStatusOut

router = APIRouter(tags=["stripe"])


@router.post("/stripe-connect", response_model=ConnectOut)
def stripe_connect(
    origin: Optional[str] = Header(default=None),
    user: CurrentUser = Depends(get_current_user),
    onboarding: ConnectOnboarding = Depends(get_onboarding),
):
    return onboarding.start(user, origin=origin)


@router.get("/check-stripe-status", response_model=StripeStatusOut, response_model_exclude_none=True)
def check_stripe_status(
    user: CurrentUser = Depends(get_current_user),
    onboarding: ConnectOnboarding = Depends(get_onboarding),
):
    return onboarding.status(user)
