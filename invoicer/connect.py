# invoicer/connect.py
import logging
from typing import Optional

from .auth import CurrentUser
from .config import Settings
from .errors import AuthError, NotFoundError, StoreError
from .models import ConnectOut, StripeStatusOut
from .store import SupabaseStore
from .stripe_gateway import StripeGateway

logger = logging.getLogger("uvicorn.error")


class ConnectOnboarding:
    """Stripe Connect (Express) onboarding for a company owner."""

    def __init__(self, store: SupabaseStore, gateway: StripeGateway, settings: Settings):
        self.store = store
        self.gateway = gateway
        self.settings = settings

    def start(self, user: CurrentUser, origin: Optional[str] = None) -> ConnectOut:
        if not user.email:
            raise AuthError("User not authenticated")
        profile = self.store.get_profile(user.id)
        if profile is None:
            raise NotFoundError("Profile not found")

        account_id = profile.stripe_account_id
        if account_id:
            logger.info(f"Reusing Stripe account {account_id} for user {user.id}")
        else:
            account_id = self.gateway.create_express_account(user.email)
            logger.info(f"Created Stripe account: {account_id} for {user.email}")
            try:
                self.store.update_profile(user.id, {"stripe_account_id": account_id})
            except StoreError as e:
                logger.error(f"Error updating profile with Stripe account: {e.message}")

        base_url = (origin or self.settings.app_url).rstrip("/")
        url = self.gateway.create_onboarding_link(
            account_id,
            refresh_url=f"{base_url}/profile?stripe_refresh=true",
            return_url=f"{base_url}/profile?stripe_success=true",
        )
        return ConnectOut(success=True, url=url, account_id=account_id)

    def status(self, user: CurrentUser) -> StripeStatusOut:
        profile = self.store.get_profile(user.id)
        if profile is None or not profile.stripe_account_id:
            return StripeStatusOut(connected=False)

        account = self.gateway.retrieve_account(profile.stripe_account_id)
        logger.info(
            f"Stripe account status: id={account.id} charges_enabled={account.charges_enabled} "
            f"payouts_enabled={account.payouts_enabled}"
        )
        if account.connected != profile.stripe_connected:
            self.store.update_profile(user.id, {"stripe_connected": account.connected})
        return StripeStatusOut(connected=account.connected, account_id=account.id)
