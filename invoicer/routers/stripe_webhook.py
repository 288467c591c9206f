# invoicer/routers/stripe_webhook.py
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ..deps import get_gateway, get_settings, get_store
from ..errors import AppError
from ..webhook import WebhookReconciler

router = APIRouter(tags=["stripe"])


@router.post("/stripe-webhook")
async def stripe_webhook(request: Request):
    payload = await request.body()
    sig = request.headers.get("stripe-signature")
    # Stripe retries on non-2xx, so errors here always carry their real status
    try:
        reconciler = WebhookReconciler(get_store(request), get_gateway(request), get_settings(request))
        return await run_in_threadpool(reconciler.handle, payload, sig)
    except AppError as e:
        return JSONResponse({"received": False, "error": e.message}, status_code=e.status_code)
