# tests/test_stripe_gateway.py
from types import SimpleNamespace

import pytest
import stripe

from invoicer.errors import SelfTransferRejected, UpstreamError
from invoicer.stripe_gateway import StripeGateway


def test_checkout_session_passes_key_per_call(monkeypatch):
    seen = {}

    def fake_create(**kwargs):
        seen.update(kwargs)
        return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    session = StripeGateway("sk_test_123").create_checkout_session({"mode": "payment"})

    assert session.id == "cs_test_1"
    assert seen == {"api_key": "sk_test_123", "mode": "payment"}
    assert stripe.api_key != "sk_test_123"


def test_own_account_destination_is_reported_as_self_transfer(monkeypatch):
    def fake_create(**kwargs):
        raise stripe.InvalidRequestError(
            "The 'destination' param cannot be set to your own account.",
            "payment_intent_data[transfer_data][destination]",
        )

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    with pytest.raises(SelfTransferRejected):
        StripeGateway("sk_test_123").create_checkout_session({})


def test_other_invalid_requests_are_upstream_errors(monkeypatch):
    def fake_create(**kwargs):
        raise stripe.InvalidRequestError("Amount must be at least 50 cents", "line_items[0][price_data][unit_amount]")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    with pytest.raises(UpstreamError) as exc:
        StripeGateway("sk_test_123").create_checkout_session({})
    assert not isinstance(exc.value, SelfTransferRejected)


def test_missing_key_fails_before_calling_stripe(monkeypatch):
    monkeypatch.setattr(stripe.checkout.Session, "create", lambda **kw: pytest.fail("Stripe was called"))

    with pytest.raises(UpstreamError) as exc:
        StripeGateway(None).create_checkout_session({})
    assert "STRIPE_SECRET_KEY" in exc.value.hint


def test_retrieve_account(monkeypatch):
    monkeypatch.setattr(
        stripe.Account,
        "retrieve",
        lambda account_id, api_key: SimpleNamespace(id=account_id, charges_enabled=True, payouts_enabled=True),
    )

    status = StripeGateway("sk_test_123").retrieve_account("acct_X")

    assert status.id == "acct_X"
    assert status.connected is True
