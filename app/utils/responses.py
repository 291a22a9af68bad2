"""
Response envelopes shared by the backoffice and table routes
"""

from typing import Any
from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.core.exceptions import BackofficeError
from app.schemas.common import StandardResponse, ErrorResponse

def success_response(message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    """Wrap a payload in the standard success envelope"""
    body = StandardResponse(success=True, message=message, data=data)
    return JSONResponse(content=jsonable_encoder(body), status_code=status_code)

def error_response(exc: BackofficeError) -> JSONResponse:
    """Render a domain error with its status and machine-readable code"""
    body = ErrorResponse(message=exc.message, error_code=exc.error_code, details=exc.details)
    return JSONResponse(content=jsonable_encoder(body), status_code=exc.status_code)

def rate_limit_error(retry_after: int = 60):
    """Reject a table that is sending orders too quickly"""
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too many orders from this device. Please wait a moment and try again.",
        headers={"Retry-After": str(retry_after)}
    )
