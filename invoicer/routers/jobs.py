# invoicer/routers/jobs.py
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..config import Settings
from ..deps import get_profile, get_settings, get_store
from ..errors import DuplicateRecordError, NotFoundError, ValidationError
from ..models import Job, JobIn, JobStatus, PaymentRecord, Profile
from ..pricing import format_cents, to_minor_units
from ..store import SupabaseStore

router = APIRouter(prefix="/jobs", tags=["jobs"])
logger = logging.getLogger("uvicorn.error")


def _owned_job(job_id: str, profile: Profile, store: SupabaseStore) -> Job:
    job = store.get_job(job_id)
    if job is None or job.company_id != profile.company_id:
        raise NotFoundError("Job not found")
    return job


@router.get("", response_model=List[Job])
def list_jobs(
    status: Optional[JobStatus] = Query(default=None),
    profile: Profile = Depends(get_profile),
    store: SupabaseStore = Depends(get_store),
):
    return store.list_jobs(profile.company_id, status)


@router.post("", response_model=Job)
def create_job(payload: JobIn, profile: Profile = Depends(get_profile), store: SupabaseStore = Depends(get_store)):
    client = store.get_client(payload.client_id)
    if client is None or client.company_id != profile.company_id:
        raise ValidationError("Client not found or not yours")

    price_cents = to_minor_units(payload.price)
    return store.insert_job({
        "company_id": profile.company_id,
        "title": payload.title,
        "description": payload.description,
        "client_id": client.id,
        "client_name": client.name,
        "price": format_cents(price_cents),
        "scheduled_date": payload.scheduled_date.isoformat(),
        "is_recurring": payload.is_recurring,
        "frequency": payload.frequency,
        "status": "pending",
    })


@router.get("/{job_id}", response_model=Job)
def read_job(job_id: str, profile: Profile = Depends(get_profile), store: SupabaseStore = Depends(get_store)):
    return _owned_job(job_id, profile, store)


@router.post("/{job_id}/mark-paid", response_model=Job)
def mark_paid(
    job_id: str,
    profile: Profile = Depends(get_profile),
    store: SupabaseStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Manual override for jobs paid outside Stripe (cash, cheque...)."""
    job = _owned_job(job_id, profile, store)
    if job.status != "pending":
        raise ValidationError(f"Job is already {job.status}")

    paid_at = datetime.now(timezone.utc)
    try:
        store.insert_payment(PaymentRecord(
            job_id=job.id,
            amount=to_minor_units(job.price),
            currency=settings.stripe_currency,
            payment_status="paid",
            paid_at=paid_at,
            source="manual",
        ))
    except DuplicateRecordError:
        # a checkout payment or a concurrent mark-paid got there first
        raise ValidationError("Job is already paid")
    store.transition_job(job.id, "pending", "paid", {"paid_at": paid_at.isoformat()})
    logger.info(f"Job {job.id} marked as paid by {profile.id}")
    return store.get_job(job.id)


@router.post("/{job_id}/complete", response_model=Job)
def complete_job(job_id: str, profile: Profile = Depends(get_profile), store: SupabaseStore = Depends(get_store)):
    job = _owned_job(job_id, profile, store)
    if not store.transition_job(job.id, "paid", "completed"):
        raise ValidationError(f"Only paid jobs can be completed (job is {job.status})")
    logger.info(f"Job {job.id} completed by {profile.id}")
    return store.get_job(job.id)
