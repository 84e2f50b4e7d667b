"""
Response envelope helpers.

Every endpoint answers ``{success, message, data?, error?}``; ``error`` is
only filled in development mode.
"""

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from api.models import APIResponse


def send_success(data: Any = None, message: str = "Success") -> APIResponse:
    """Success envelope; endpoints return it and set the status code on the route."""
    return APIResponse(success=True, message=message, data=data)


def send_error(
    message: str = "An error occurred",
    status_code: int = 500,
    error: Any = None,
    include_error: bool = False,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """
    Build an error response.

    Args:
        message: Human-readable message
        status_code: HTTP status code
        error: Internal details, attached only when ``include_error`` is set
        include_error: Whether the deployment exposes error details
        headers: Extra response headers
    """
    body = APIResponse(
        success=False,
        message=message,
        error=error if include_error else None,
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, exclude_none=True),
        headers=headers,
    )
