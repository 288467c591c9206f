# invoicer/routers/payments.py
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends

from ..deps import get_profile, get_store
from ..models import PaymentRecord, PaymentsOut, PaymentStats, Profile
from ..store import SupabaseStore

router = APIRouter(prefix="/payments", tags=["payments"])


def summarize(payments: List[PaymentRecord], now: datetime) -> PaymentStats:
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    stats = PaymentStats()
    for p in payments:
        if p.payment_status == "paid":
            stats.total_revenue += p.amount
            paid_at = p.paid_at
            if paid_at and paid_at.tzinfo is None:
                paid_at = paid_at.replace(tzinfo=timezone.utc)
            if paid_at and paid_at >= month_start:
                stats.paid_this_month += p.amount
        elif p.payment_status == "pending":
            stats.pending_amount += p.amount
    return stats


@router.get("", response_model=PaymentsOut)
def list_payments(profile: Profile = Depends(get_profile), store: SupabaseStore = Depends(get_store)):
    payments = store.list_payments(profile.company_id)
    return PaymentsOut(payments=payments, stats=summarize(payments, datetime.now(timezone.utc)))
