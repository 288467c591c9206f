# invoicer/auth.py
import logging
from typing import Optional

import httpx
from jose import JWTError, jwt
from pydantic import BaseModel

from .errors import AuthError

logger = logging.getLogger("uvicorn.error")


class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None


class Authenticator:
    """
    Verifies Supabase access tokens.

    With the project's JWT secret configured tokens are checked locally
    (HS256, issuer = <SUPABASE_URL>/auth/v1). Otherwise Supabase is asked
    who the token belongs to via /auth/v1/user.
    """

    def __init__(self, supabase_url: Optional[str], jwt_secret: Optional[str] = None, api_key: Optional[str] = None):
        self.supabase_url = (supabase_url or "").rstrip("/")
        self.jwt_secret = jwt_secret
        self.api_key = api_key

    @property
    def issuer(self) -> Optional[str]:
        return f"{self.supabase_url}/auth/v1" if self.supabase_url else None

    def authenticate(self, token: str) -> CurrentUser:
        if not token:
            raise AuthError("Missing Bearer token")
        if self.jwt_secret:
            return self._decode(token)
        return self._fetch_user(token)

    def _decode(self, token: str) -> CurrentUser:
        try:
            claims = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=["HS256"],
                options={"verify_aud": False},
                issuer=self.issuer,
            )
        except JWTError as e:
            raise AuthError(f"Invalid token: {e}")
        sub = claims.get("sub")
        if not sub:
            raise AuthError("Token missing subject (sub)")
        return CurrentUser(id=sub, email=claims.get("email"))

    def _fetch_user(self, token: str) -> CurrentUser:
        if not self.supabase_url:
            raise AuthError("User not authenticated", hint="Set SUPABASE_URL or SUPABASE_JWT_SECRET")
        try:
            resp = httpx.get(
                f"{self.supabase_url}/auth/v1/user",
                headers={"Authorization": f"Bearer {token}", "apikey": self.api_key or token},
                timeout=10,
            )
        except httpx.HTTPError as e:
            logger.error(f"Supabase auth lookup failed: {e}")
            raise AuthError("Could not verify token with Supabase")
        if resp.status_code != 200:
            raise AuthError("Invalid or expired token")
        data = resp.json() or {}
        uid = data.get("id") or (data.get("user") or {}).get("id")
        if not uid:
            raise AuthError("User id not found from Supabase")
        return CurrentUser(id=uid, email=data.get("email"))
