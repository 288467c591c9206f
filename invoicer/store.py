# invoicer/store.py
"""Supabase-backed storage for jobs, profiles, clients and the payment ledger."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client

from .errors import DuplicateRecordError, InvalidIdError, StoreError
from .models import Client as ClientRow
from .models import Job, PaymentRecord, Profile

logger = logging.getLogger("uvicorn.error")

UNIQUE_VIOLATION = "23505"
INVALID_TEXT_REPRESENTATION = "22P02"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _execute(query, what: str):
    try:
        return query.execute()
    except APIError as e:
        if e.code == UNIQUE_VIOLATION:
            raise DuplicateRecordError(f"{what}: duplicate record")
        if e.code == INVALID_TEXT_REPRESENTATION:
            raise InvalidIdError(f"{what}: malformed id")
        logger.error(f"{what} error: {e.message}")
        raise StoreError(f"{what} failed: {e.message}")


def _first(resp) -> Optional[Dict[str, Any]]:
    rows = resp.data or []
    return rows[0] if rows else None


class SupabaseStore:
    def __init__(self, sb: Client):
        self.sb = sb

    @classmethod
    def from_settings(cls, settings) -> "SupabaseStore":
        url = settings.supabase_url
        key = settings.supabase_service_role_key
        if not url or not key:
            raise StoreError(
                "Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY",
                hint="Set both in the service environment",
            )
        return cls(create_client(url, key))

    # ── jobs ────────────────────────────────────────────────────────────────
    def get_job(self, job_id: str) -> Optional[Job]:
        try:
            resp = _execute(self.sb.table("jobs").select("*").eq("id", job_id).limit(1), "jobs select")
        except InvalidIdError:
            return None
        row = _first(resp)
        return Job.model_validate(row) if row else None

    def list_jobs(self, company_id: str, status: Optional[str] = None) -> List[Job]:
        q = self.sb.table("jobs").select("*").eq("company_id", company_id)
        if status:
            q = q.eq("status", status)
        resp = _execute(q.order("scheduled_date", desc=True), "jobs select")
        return [Job.model_validate(r) for r in resp.data or []]

    def insert_job(self, fields: Dict[str, Any]) -> Job:
        resp = _execute(self.sb.table("jobs").insert(fields), "jobs insert")
        return Job.model_validate(_first(resp))

    def update_job(self, job_id: str, fields: Dict[str, Any]) -> None:
        _execute(
            self.sb.table("jobs").update({**fields, "updated_at": _now()}).eq("id", job_id),
            "jobs update",
        )

    def transition_job(self, job_id: str, from_status: str, to_status: str, fields: Optional[Dict[str, Any]] = None) -> bool:
        """Move a job between statuses; False if it was not in `from_status`."""
        resp = _execute(
            self.sb.table("jobs")
            .update({**(fields or {}), "status": to_status, "updated_at": _now()})
            .eq("id", job_id)
            .eq("status", from_status),
            "jobs update",
        )
        return bool(resp.data)

    # ── profiles ────────────────────────────────────────────────────────────
    def get_profile(self, user_id: str) -> Optional[Profile]:
        resp = _execute(self.sb.table("profiles").select("*").eq("id", user_id).limit(1), "profiles select")
        row = _first(resp)
        return Profile.model_validate(row) if row else None

    def find_connected_profile(self, company_id: str) -> Optional[Profile]:
        resp = _execute(
            self.sb.table("profiles")
            .select("*")
            .eq("company_id", company_id)
            .eq("stripe_connected", True)
            .not_.is_("stripe_account_id", "null")
            .limit(1),
            "profiles select",
        )
        row = _first(resp)
        return Profile.model_validate(row) if row else None

    def update_profile(self, user_id: str, fields: Dict[str, Any]) -> None:
        _execute(
            self.sb.table("profiles").update({**fields, "updated_at": _now()}).eq("id", user_id),
            "profiles update",
        )

    # ── clients ─────────────────────────────────────────────────────────────
    def get_client(self, client_id: str) -> Optional[ClientRow]:
        try:
            resp = _execute(self.sb.table("clients").select("*").eq("id", client_id).limit(1), "clients select")
        except InvalidIdError:
            return None
        row = _first(resp)
        return ClientRow.model_validate(row) if row else None

    def list_clients(self, company_id: str) -> List[ClientRow]:
        resp = _execute(
            self.sb.table("clients").select("*").eq("company_id", company_id).order("created_at", desc=True),
            "clients select",
        )
        return [ClientRow.model_validate(r) for r in resp.data or []]

    def insert_client(self, fields: Dict[str, Any]) -> ClientRow:
        resp = _execute(self.sb.table("clients").insert(fields), "clients insert")
        return ClientRow.model_validate(_first(resp))

    # ── payments ────────────────────────────────────────────────────────────
    def insert_payment(self, record: PaymentRecord) -> PaymentRecord:
        """Raises DuplicateRecordError when the session, or a paid record for the job, already exists."""
        fields = record.model_dump(mode="json", exclude_none=True)
        resp = _execute(self.sb.table("payments").insert(fields), "payments insert")
        return PaymentRecord.model_validate(_first(resp))

    def list_payments(self, company_id: str) -> List[PaymentRecord]:
        resp = _execute(
            self.sb.table("payments")
            .select("*, jobs!inner(company_id)")
            .eq("jobs.company_id", company_id)
            .order("paid_at", desc=True),
            "payments select",
        )
        return [PaymentRecord.model_validate(r) for r in resp.data or []]
