# invoicer/routers/health.py
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..db import Database
from ..deps import get_database

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger("uvicorn.error")


@router.get("")
def health():
    return {"ok": True}


@router.get("/db")
async def health_db(db: Database = Depends(get_database)):
    try:
        return {"ok": True, "db": await db.ping()}
    except Exception as e:
        # surface the error so we know exactly what's wrong
        logger.error(f"DB check failed: {e}")
        return JSONResponse({"ok": False, "error": f"DB check failed: {e}"}, status_code=503)
