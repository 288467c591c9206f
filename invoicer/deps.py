# invoicer/deps.py
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .auth import CurrentUser
from .checkout import CheckoutSessionBuilder
from .config import Settings
from .connect import ConnectOnboarding
from .db import Database
from .errors import AuthError, NotFoundError
from .models import Profile
from .store import SupabaseStore
from .stripe_gateway import StripeGateway
from .webhook import WebhookReconciler

bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> SupabaseStore:
    state = request.app.state
    if state.store is None:
        # built on first use so the app can start without Supabase configured
        state.store = SupabaseStore.from_settings(state.settings)
    return state.store


def get_gateway(request: Request) -> StripeGateway:
    return request.app.state.gateway


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> CurrentUser:
    if credentials is None:
        raise AuthError("Missing Bearer token")
    return request.app.state.authenticator.authenticate(credentials.credentials)


def get_profile(
    user: CurrentUser = Depends(get_current_user),
    store: SupabaseStore = Depends(get_store),
) -> Profile:
    """The caller's profile; its company_id scopes every dashboard query."""
    profile = store.get_profile(user.id)
    if profile is None:
        raise NotFoundError("Profile not found")
    if not profile.company_id:
        raise NotFoundError("Profile has no company", hint="Generate a company ID from the profile tab first")
    return profile


def get_checkout_builder(
    store: SupabaseStore = Depends(get_store),
    gateway: StripeGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> CheckoutSessionBuilder:
    return CheckoutSessionBuilder(store, gateway, settings)


def get_reconciler(
    store: SupabaseStore = Depends(get_store),
    gateway: StripeGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> WebhookReconciler:
    return WebhookReconciler(store, gateway, settings)


def get_onboarding(
    store: SupabaseStore = Depends(get_store),
    gateway: StripeGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> ConnectOnboarding:
    return ConnectOnboarding(store, gateway, settings)
