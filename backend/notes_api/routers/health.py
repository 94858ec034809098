from fastapi import APIRouter
from fastapi.responses import JSONResponse
import logging

from notes_api.core import database as _db

log = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


def _check_db() -> bool:
    try:
        # Dereference the module attribute so test fixtures that patch the engine take effect
        engine = getattr(_db, "engine")
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        return True
    except Exception as e:
        log.warning("[health] Database check failed: %s", e)
        return False


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/health/deep")
def health_deep():
    db_ok = _check_db()
    body = {"status": "ok" if db_ok else "degraded", "db": "ok" if db_ok else "fail"}
    return JSONResponse(body, status_code=200 if db_ok else 503)
