# invoicer/stripe_gateway.py
import logging
from typing import Any, Dict, Optional

import stripe
from pydantic import BaseModel

from .errors import SelfTransferRejected, UpstreamError, WebhookSignatureError

logger = logging.getLogger("uvicorn.error")

MISSING_KEY_HINT = "Add STRIPE_SECRET_KEY to the service environment (Stripe Dashboard → Developers → API keys)"


class CheckoutSession(BaseModel):
    id: str
    url: str


class AccountStatus(BaseModel):
    id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False

    @property
    def connected(self) -> bool:
        return self.charges_enabled and self.payouts_enabled


def _is_self_transfer(err: stripe.InvalidRequestError) -> bool:
    text = str(err.user_message or err).lower()
    if "own account" in text:
        return True
    return bool(err.param) and "destination" in err.param and "same" in text


class StripeGateway:
    """Thin wrapper over the Stripe SDK; the key is passed per call, never set globally."""

    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key

    def _key(self) -> str:
        if not self.api_key:
            logger.error("STRIPE_SECRET_KEY not found in environment")
            raise UpstreamError("Stripe configuration missing", hint=MISSING_KEY_HINT)
        return self.api_key

    def create_checkout_session(self, params: Dict[str, Any]) -> CheckoutSession:
        api_key = self._key()
        try:
            session = stripe.checkout.Session.create(api_key=api_key, **params)
        except stripe.InvalidRequestError as e:
            if _is_self_transfer(e):
                raise SelfTransferRejected(f"Stripe rejected the transfer destination: {e.user_message or e}")
            logger.error(f"Stripe Checkout create failed: {e}")
            raise UpstreamError(f"Failed to create checkout session: {e.user_message or e}")
        except stripe.StripeError as e:
            logger.error(f"Stripe Checkout create failed: {e}")
            raise UpstreamError(
                "Failed to create checkout session",
                hint="Check the Stripe key and the service logs",
            )
        return CheckoutSession(id=session.id, url=session.url)

    def create_express_account(self, email: str) -> str:
        api_key = self._key()
        try:
            account = stripe.Account.create(
                api_key=api_key,
                type="express",
                email=email,
                capabilities={
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe account create failed: {e}")
            raise UpstreamError(f"Failed to create Stripe account: {e.user_message or e}")
        return account.id

    def create_onboarding_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        api_key = self._key()
        try:
            link = stripe.AccountLink.create(
                api_key=api_key,
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe account link create failed: {e}")
            raise UpstreamError(f"Failed to create onboarding link: {e.user_message or e}")
        return link.url

    def retrieve_account(self, account_id: str) -> AccountStatus:
        api_key = self._key()
        try:
            account = stripe.Account.retrieve(account_id, api_key=api_key)
        except stripe.StripeError as e:
            logger.error(f"Stripe account retrieve failed for {account_id}: {e}")
            raise UpstreamError(f"Failed to check Stripe account: {e.user_message or e}")
        return AccountStatus(
            id=account.id,
            charges_enabled=bool(getattr(account, "charges_enabled", False)),
            payouts_enabled=bool(getattr(account, "payouts_enabled", False)),
        )

    def verify_webhook(self, payload: bytes, sig_header: Optional[str], secret: str) -> None:
        if not sig_header:
            raise WebhookSignatureError("No Stripe signature found")
        try:
            stripe.Webhook.construct_event(payload=payload, sig_header=sig_header, secret=secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            masked = secret[:6] + "..." + secret[-4:]
            logger.error(f"Stripe webhook verify FAILED: {e}; secret={masked}")
            raise WebhookSignatureError("signature verification failed")
