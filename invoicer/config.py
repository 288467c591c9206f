# invoicer/config.py
from __future__ import annotations

import os
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

FeeMode = Literal["included", "on_top"]
ErrorStyle = Literal["status", "always_200"]


class Settings(BaseModel):
    # Supabase (service role so it bypasses RLS on the server)
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    supabase_jwt_secret: Optional[str] = None
    supabase_db_url: Optional[str] = None

    # Stripe
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_platform_account_id: Optional[str] = None
    stripe_currency: str = "usd"

    app_url: str = "http://localhost:5173"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Billing policy
    platform_fee_percent: Decimal = Decimal("5")
    min_charge_cents: int = 50
    fee_mode: FeeMode = "included"
    error_response_style: ErrorStyle = "status"

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        origins = env.get("CORS_ORIGINS", "*")
        return cls(
            supabase_url=env.get("SUPABASE_URL"),
            supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY") or env.get("SUPABASE_SERVICE_ROLE"),
            supabase_jwt_secret=env.get("SUPABASE_JWT_SECRET") or None,
            supabase_db_url=env.get("SUPABASE_DB_URL"),
            stripe_secret_key=env.get("STRIPE_SECRET_KEY") or None,
            stripe_webhook_secret=env.get("STRIPE_WEBHOOK_SECRET") or None,
            stripe_platform_account_id=env.get("STRIPE_PLATFORM_ACCOUNT_ID") or None,
            stripe_currency=env.get("STRIPE_CURRENCY", "usd"),
            app_url=env.get("APP_URL", "http://localhost:5173"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            platform_fee_percent=Decimal(env.get("PLATFORM_FEE_PERCENT", "5")),
            min_charge_cents=int(env.get("MIN_CHARGE_CENTS", "50")),
            fee_mode=env.get("FEE_MODE", "included"),
            error_response_style=env.get("ERROR_RESPONSE_STYLE", "status"),
        )
