# invoicer/errors.py
from typing import Optional


class AppError(Exception):
    """Base for errors rendered as {"success": false, "error": ...}."""

    status_code = 500

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class UpstreamError(AppError):
    """Stripe or Supabase failed, or is not configured."""

    status_code = 500


class SelfTransferRejected(UpstreamError):
    """Stripe refused a transfer whose destination is the platform account."""


class StoreError(UpstreamError):
    pass


class DuplicateRecordError(StoreError):
    status_code = 409


class AuthError(AppError):
    status_code = 401


class WebhookSignatureError(AuthError):
    status_code = 400


class InvalidIdError(StoreError):
    """An id that is not a valid UUID; there can be no row for it."""

    status_code = 404
