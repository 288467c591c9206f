# invoicer/webhook.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError as SchemaError

from .config import Settings
from .errors import DuplicateRecordError, UpstreamError, ValidationError
from .models import CheckoutSessionObject, PaymentRecord, StripeEvent
from .store import SupabaseStore
from .stripe_gateway import StripeGateway

logger = logging.getLogger("uvicorn.error")

CREDIT_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")
SETTLED = ("paid", "no_payment_required")


class WebhookReconciler:
    """
    Applies Stripe "checkout completed" notifications to the ledger.

    The Checkout Session id is the idempotency key: payments.stripe_session_id
    is unique, so a redelivered event cannot credit the job twice. A job also
    holds at most one paid record, so a session paid after a manual mark-paid
    is acknowledged without counting it again.
    """

    def __init__(self, store: SupabaseStore, gateway: StripeGateway, settings: Settings):
        self.store = store
        self.gateway = gateway
        self.settings = settings

    def handle(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        secret = self.settings.stripe_webhook_secret
        if not secret:
            logger.error("Stripe webhook secret missing (STRIPE_WEBHOOK_SECRET)")
            raise UpstreamError("Webhook secret not configured", hint="Set STRIPE_WEBHOOK_SECRET from the Stripe webhook endpoint settings")

        self.gateway.verify_webhook(payload, sig_header, secret)

        try:
            event = StripeEvent.model_validate_json(payload)
        except SchemaError as e:
            logger.error(f"Stripe webhook payload rejected: {e}")
            raise ValidationError("Unexpected webhook payload")

        logger.info(f"Stripe webhook received: {event.type} ({event.id})")
        if event.type not in CREDIT_EVENTS:
            return {"received": True}

        try:
            session = CheckoutSessionObject.model_validate(event.data.object)
        except SchemaError as e:
            logger.error(f"Checkout session payload rejected for event {event.id}: {e}")
            raise ValidationError("Unexpected checkout session payload")

        return self._credit(event.id, session)

    def _credit(self, event_id: str, session: CheckoutSessionObject) -> Dict[str, Any]:
        job_id = session.metadata.get("job_id")
        if not job_id:
            logger.error(f"No job_id found in metadata of session {session.id}")
            raise ValidationError("No job_id in metadata")

        if session.payment_status not in SETTLED:
            logger.info(f"Session {session.id} completed with payment_status={session.payment_status}; waiting for settlement")
            return {"received": True}

        job = self.store.get_job(job_id)
        if job is None:
            # acknowledged so Stripe stops redelivering an event nothing can credit
            logger.warning(f"Webhook for unknown job {job_id} (session {session.id}); acknowledged without a record")
            return {"received": True}

        paid_at = datetime.now(timezone.utc)
        record = PaymentRecord(
            job_id=job_id,
            amount=session.amount_total or 0,
            currency=session.currency,
            payment_status="paid",
            paid_at=paid_at,
            card_saved=False,
            source="checkout",
            stripe_session_id=session.id,
            stripe_event_id=event_id,
        )
        duplicate = False
        try:
            self.store.insert_payment(record)
            logger.info(f"Created payment record for job {job_id}, amount: {record.amount}")
        except DuplicateRecordError:
            duplicate = True
            logger.warning(
                f"Session {session.id} not recorded for job {job_id} (event {event_id}): "
                "session replayed or job already paid; check whether a refund is due"
            )

        # ledger row first, so a paid job always has a paid record
        if self.store.transition_job(job_id, "pending", "paid", {"paid_at": paid_at.isoformat()}):
            logger.info(f"Updated job status to paid for job: {job_id}")

        out: Dict[str, Any] = {"received": True}
        if duplicate:
            out["duplicate"] = True
        return out
