# invoicer/checkout.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .config import Settings
from .errors import NotFoundError, SelfTransferRejected, StoreError, ValidationError
from .models import CheckoutOut, Job
from .pricing import ChargePlan, format_cents, plan_charge, platform_only, to_minor_units
from .store import SupabaseStore
from .stripe_gateway import StripeGateway

logger = logging.getLogger("uvicorn.error")


class CheckoutSessionBuilder:
    """Turns a job into a Stripe Checkout link and records it on the job."""

    def __init__(self, store: SupabaseStore, gateway: StripeGateway, settings: Settings):
        self.store = store
        self.gateway = gateway
        self.settings = settings

    def create(self, job_id: Optional[str], origin: Optional[str] = None, company_id: Optional[str] = None) -> CheckoutOut:
        if not job_id or not job_id.strip():
            raise ValidationError("Job ID is required")

        job = self.store.get_job(job_id)
        # a job of another tenant is reported exactly like a missing one
        if job is None or (company_id is not None and job.company_id != company_id):
            logger.error(f"Job not found for ID: {job_id}")
            raise NotFoundError("Job not found")

        if job.status != "pending":
            logger.error(f"Checkout requested for job {job.id} in status {job.status}")
            raise ValidationError(f"Job is already {job.status}")

        price_cents = to_minor_units(job.price)
        if price_cents < self.settings.min_charge_cents:
            logger.error(f"Price too low for Stripe (minimum {self.settings.min_charge_cents}): {price_cents}")
            raise ValidationError(
                f"Job price too low for payment processing (minimum ${format_cents(self.settings.min_charge_cents)})"
            )

        plan = self._plan(job, price_cents)
        logger.info(
            f"Routing job {job.id}: method={plan.routing_method} price={price_cents} "
            f"fee={plan.fee_cents} amount={plan.amount_cents} destination={plan.destination}"
        )

        base_url = (origin or self.settings.app_url).rstrip("/")
        try:
            session = self.gateway.create_checkout_session(self.session_params(job, plan, base_url))
        except SelfTransferRejected as e:
            # retry once without transfer or fee
            logger.warning(f"{e.message}; retrying job {job.id} on the platform account")
            plan = platform_only(price_cents)
            session = self.gateway.create_checkout_session(self.session_params(job, plan, base_url))

        logger.info(f"Stripe session created: {session.id} for job {job.id}")

        try:
            self.store.update_job(job.id, {"payment_url": session.url, "stripe_session_id": session.id})
        except StoreError as e:
            # the link is already usable, so the call still succeeds
            logger.warning(f"Error updating job {job.id} with payment link: {e.message}")

        return CheckoutOut(success=True, url=session.url, sessionId=session.id)

    def _plan(self, job: Job, price_cents: int) -> ChargePlan:
        account_id, connected = None, False
        if job.company_id:
            profile = self.store.find_connected_profile(job.company_id)
            if profile is not None:
                account_id, connected = profile.stripe_account_id, profile.stripe_connected
        else:
            logger.warning(f"Job {job.id} does not have company_id, using platform account")
        return plan_charge(
            price_cents,
            account_id,
            connected,
            self.settings.stripe_platform_account_id,
            self.settings.platform_fee_percent,
            self.settings.fee_mode,
        )

    def session_params(self, job: Job, plan: ChargePlan, base_url: str) -> Dict[str, Any]:
        currency = self.settings.stripe_currency
        client_name = job.client_name or "Client"
        params: Dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [{
                "price_data": {
                    "currency": currency,
                    "product_data": {
                        "name": job.title or "Service",
                        "description": f"Service for {client_name}",
                    },
                    "unit_amount": plan.amount_cents,
                },
                "quantity": 1,
            }],
            "success_url": f"{base_url}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{base_url}/",
            "metadata": {
                "job_id": job.id,
                "client_name": job.client_name or "Unknown Client",
                "company_id": job.company_id or "",
                "original_price": format_cents(plan.price_cents),
                "platform_fee_amount": format_cents(plan.fee_cents),
                "routing_method": plan.routing_method,
            },
        }
        if plan.connected:
            params["payment_intent_data"] = {
                "application_fee_amount": plan.fee_cents,
                "transfer_data": {"destination": plan.destination},
            }
        return params
