# tests/conftest.py
import hashlib
import hmac
import itertools
import json
import time
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from invoicer.auth import Authenticator
from invoicer.config import Settings
from invoicer.errors import DuplicateRecordError, SelfTransferRejected, StoreError
from invoicer.main import create_app
from invoicer.models import Client, Job, PaymentRecord, Profile
from invoicer.stripe_gateway import AccountStatus, CheckoutSession, StripeGateway

SUPABASE_URL = "https://proj.supabase.co"
JWT_SECRET = "test-jwt-secret"
WEBHOOK_SECRET = "whsec_test_secret"
PLATFORM_ACCOUNT = "acct_platform"


class FakeStore:
    """In-memory stand-in for SupabaseStore."""

    def __init__(self):
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.clients: Dict[str, Dict[str, Any]] = {}
        self.payments: List[PaymentRecord] = []
        self.fail_job_updates = False
        self._ids = itertools.count(1)

    def add_job(self, job_id: str, **fields) -> Job:
        row = {"id": job_id, "status": "pending", "company_id": "co_1", "title": "Lawn care", "client_name": "Ada", **fields}
        self.jobs[job_id] = row
        return Job.model_validate(row)

    def add_profile(self, user_id: str, **fields) -> Profile:
        row = {"id": user_id, "email": f"{user_id}@example.com", "company_id": "co_1", "role": "owner", **fields}
        self.profiles[user_id] = row
        return Profile.model_validate(row)

    # jobs
    def get_job(self, job_id: str) -> Optional[Job]:
        row = self.jobs.get(job_id)
        return Job.model_validate(row) if row else None

    def list_jobs(self, company_id: str, status: Optional[str] = None) -> List[Job]:
        rows = [r for r in self.jobs.values() if r.get("company_id") == company_id]
        if status:
            rows = [r for r in rows if r["status"] == status]
        rows = sorted(rows, key=lambda r: str(r.get("scheduled_date") or ""), reverse=True)
        return [Job.model_validate(r) for r in rows]

    def insert_job(self, fields: Dict[str, Any]) -> Job:
        job_id = f"job_{next(self._ids)}"
        self.jobs[job_id] = {"id": job_id, **fields}
        return Job.model_validate(self.jobs[job_id])

    def update_job(self, job_id: str, fields: Dict[str, Any]) -> None:
        if self.fail_job_updates:
            raise StoreError("jobs update failed: connection reset")
        self.jobs[job_id].update(fields)

    def transition_job(self, job_id, from_status, to_status, fields=None) -> bool:
        row = self.jobs.get(job_id)
        if row is None or row["status"] != from_status:
            return False
        row.update(fields or {})
        row["status"] = to_status
        return True

    # profiles
    def get_profile(self, user_id: str) -> Optional[Profile]:
        row = self.profiles.get(user_id)
        return Profile.model_validate(row) if row else None

    def find_connected_profile(self, company_id: str) -> Optional[Profile]:
        for row in self.profiles.values():
            if row.get("company_id") == company_id and row.get("stripe_connected") and row.get("stripe_account_id"):
                return Profile.model_validate(row)
        return None

    def update_profile(self, user_id: str, fields: Dict[str, Any]) -> None:
        self.profiles[user_id].update(fields)

    # clients
    def get_client(self, client_id: str) -> Optional[Client]:
        row = self.clients.get(client_id)
        return Client.model_validate(row) if row else None

    def list_clients(self, company_id: str) -> List[Client]:
        return [Client.model_validate(r) for r in self.clients.values() if r["company_id"] == company_id]

    def insert_client(self, fields: Dict[str, Any]) -> Client:
        client_id = f"client_{next(self._ids)}"
        self.clients[client_id] = {"id": client_id, **fields}
        return Client.model_validate(self.clients[client_id])

    # payments
    def insert_payment(self, record: PaymentRecord) -> PaymentRecord:
        if record.stripe_session_id and any(p.stripe_session_id == record.stripe_session_id for p in self.payments):
            raise DuplicateRecordError("payments insert: duplicate record")
        if record.payment_status == "paid" and any(
            p.job_id == record.job_id and p.payment_status == "paid" for p in self.payments
        ):
            raise DuplicateRecordError("payments insert: duplicate record")
        saved = record.model_copy(update={"id": f"pay_{next(self._ids)}"})
        self.payments.append(saved)
        return saved

    def list_payments(self, company_id: str) -> List[PaymentRecord]:
        return [p for p in self.payments if self.jobs[p.job_id].get("company_id") == company_id]


class FakeGateway(StripeGateway):
    """Records Stripe calls instead of making them; webhook verification is real."""

    def __init__(self):
        super().__init__("sk_test_fake")
        self.sessions: List[Dict[str, Any]] = []
        self.attempts: List[Dict[str, Any]] = []
        self.reject_transfers = False
        self.accounts: Dict[str, AccountStatus] = {}
        self.created_accounts: List[str] = []
        self.links: List[Dict[str, str]] = []

    def create_checkout_session(self, params):
        self.attempts.append(params)
        if self.reject_transfers and "payment_intent_data" in params:
            raise SelfTransferRejected("The 'destination' param cannot be set to your own account.")
        self.sessions.append(params)
        n = len(self.sessions)
        return CheckoutSession(id=f"cs_test_{n}", url=f"https://checkout.stripe.com/c/pay/cs_test_{n}")

    def create_express_account(self, email):
        self.created_accounts.append(email)
        return "acct_new"

    def create_onboarding_link(self, account_id, refresh_url, return_url):
        self.links.append({"account": account_id, "refresh_url": refresh_url, "return_url": return_url})
        return f"https://connect.stripe.com/setup/e/{account_id}"

    def retrieve_account(self, account_id):
        return self.accounts[account_id]


def make_token(user_id: str = "user_1", email: Optional[str] = "user_1@example.com", **claims) -> str:
    payload = {
        "sub": user_id,
        "email": email,
        "iss": f"{SUPABASE_URL}/auth/v1",
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
        **claims,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    ts = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(secret.encode(), f"{ts}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def checkout_event(
    job_id: Optional[str] = "job_1",
    session_id: str = "cs_test_1",
    event_id: str = "evt_1",
    event_type: str = "checkout.session.completed",
    amount_total: int = 10000,
    payment_status: str = "paid",
) -> str:
    metadata = {"job_id": job_id} if job_id else {}
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": {
            "id": session_id,
            "object": "checkout.session",
            "amount_total": amount_total,
            "currency": "usd",
            "payment_status": payment_status,
            "metadata": metadata,
        }},
    })


@pytest.fixture
def settings():
    return Settings(
        supabase_url=SUPABASE_URL,
        supabase_jwt_secret=JWT_SECRET,
        stripe_secret_key="sk_test_fake",
        stripe_webhook_secret=WEBHOOK_SECRET,
        stripe_platform_account_id=PLATFORM_ACCOUNT,
        app_url="https://app.example.com",
    )


@pytest.fixture
def store():
    s = FakeStore()
    s.add_profile("user_1")
    return s


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(settings, store, gateway):
    return create_app(
        settings=settings,
        store=store,
        gateway=gateway,
        authenticator=Authenticator(settings.supabase_url, settings.supabase_jwt_secret),
    )


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}
