"""Error taxonomy for usage accounting and the HTTP mapping for it.

Callers choose user-facing copy from the error type:
- ``NotFound``: contact support / wrong account (fatal to the request)
- ``StorageUnavailable``: transient, try again later
- ``InvalidInput``: rejected before any computation ran
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

_log = logging.getLogger("notes_api.errors")


class EntitlementError(Exception):
    status_code = 500
    code = "ENTITLEMENT_ERROR"

    def __init__(self, detail: str, *, code: Optional[str] = None, context: Optional[Mapping[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        if code:
            self.code = code
        self.context = dict(context or {})


class NotFound(EntitlementError):
    status_code = 404
    code = "PROFILE_NOT_FOUND"


class StorageUnavailable(EntitlementError):
    status_code = 503
    code = "STORAGE_UNAVAILABLE"


class InvalidInput(EntitlementError):
    status_code = 422
    code = "INVALID_INPUT"


def audit_error_log(exc: EntitlementError) -> str:
    """Log the error loudly with a fresh debug id and return the id for correlation."""
    debug_id = uuid.uuid4().hex
    level = logging.ERROR if isinstance(exc, StorageUnavailable) else logging.WARNING
    _log.log(
        level,
        "event=entitlement_error debug_id=%s code=%s detail=%s context=%r",
        debug_id,
        exc.code,
        exc.detail,
        exc.context,
        exc_info=exc.__cause__ is not None,
    )
    return debug_id


async def _entitlement_error_handler(request: Request, exc: EntitlementError) -> JSONResponse:
    debug_id = audit_error_log(exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers={"X-Debug-ID": debug_id},
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EntitlementError, _entitlement_error_handler)  # type: ignore[arg-type]


__all__ = [
    "EntitlementError",
    "NotFound",
    "StorageUnavailable",
    "InvalidInput",
    "audit_error_log",
    "install_exception_handlers",
]
