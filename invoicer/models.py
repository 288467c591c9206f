# invoicer/models.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

JobStatus = Literal["pending", "paid", "completed"]
PaymentStatus = Literal["pending", "paid", "failed"]
RoutingMethod = Literal["platform_only", "connected_account"]
Frequency = Literal["weekly", "bi-weekly", "monthly"]


# ──────────────────────────────────────────────────────────────────────────────
# Rows (shape matches the Supabase tables; unknown columns are ignored)
# ──────────────────────────────────────────────────────────────────────────────
class Row(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Job(Row):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    # raw numeric column; parsed (and rejected if bad) when a link is generated
    price: Any = None
    company_id: Optional[str] = None
    scheduled_date: Optional[date] = None
    is_recurring: bool = False
    frequency: Optional[str] = None
    status: JobStatus = "pending"
    payment_url: Optional[str] = None
    stripe_session_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Profile(Row):
    id: str
    email: Optional[str] = None
    company_id: Optional[str] = None
    # owner | teammate (older rows carry "invoice_owner")
    role: Optional[str] = "owner"
    stripe_account_id: Optional[str] = None
    stripe_connected: bool = False


class PaymentRecord(Row):
    id: Optional[str] = None
    job_id: str
    amount: int
    currency: Optional[str] = None
    payment_status: PaymentStatus = "paid"
    paid_at: Optional[datetime] = None
    card_saved: bool = False
    source: Literal["checkout", "manual"] = "checkout"
    stripe_session_id: Optional[str] = None
    stripe_event_id: Optional[str] = None


class Client(Row):
    id: str
    company_id: Optional[str] = None
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None


# ──────────────────────────────────────────────────────────────────────────────
# Request / response bodies
# ──────────────────────────────────────────────────────────────────────────────
class CheckoutIn(BaseModel):
    jobId: Optional[str] = None


class CheckoutOut(BaseModel):
    success: bool = True
    url: Optional[str] = None
    sessionId: Optional[str] = None


class ConnectOut(BaseModel):
    success: bool = True
    url: str
    account_id: str


class StripeStatusOut(BaseModel):
    connected: bool
    account_id: Optional[str] = None


class ClientIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class JobIn(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    client_id: str = Field(..., min_length=1)
    price: Decimal = Field(..., gt=0, decimal_places=2)
    scheduled_date: date
    is_recurring: bool = False
    frequency: Frequency = "weekly"


class PaymentStats(BaseModel):
    total_revenue: int = 0
    pending_amount: int = 0
    paid_this_month: int = 0


class PaymentsOut(BaseModel):
    payments: List[PaymentRecord]
    stats: PaymentStats


# ──────────────────────────────────────────────────────────────────────────────
# Stripe webhook payloads, validated after the signature check
# ──────────────────────────────────────────────────────────────────────────────
class StripeEventData(BaseModel):
    object: Dict[str, Any]


class StripeEvent(BaseModel):
    id: str
    type: str
    data: StripeEventData


class CheckoutSessionObject(BaseModel):
    id: str
    object: Literal["checkout.session"]
    amount_total: Optional[int] = None
    currency: Optional[str] = None
    payment_status: str
    metadata: Dict[str, str] = Field(default_factory=dict)
