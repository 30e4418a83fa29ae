from http import HTTPStatus
from typing import Any, Dict, Mapping, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def envelope(status_code: int, message: str, data: Optional[Any] = None) -> Dict[str, Any]:
    """
    The body every JSON endpoint returns: `status` is "success" below 400,
    "error" otherwise, and `data` is never null.
    """
    return {
        "status_code": status_code,
        "status": "success" if status_code < 400 else "error",
        "message": message,
        "data": jsonable_encoder(data) if data is not None else {},
    }


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=envelope(status_code, message, data),
        headers=headers,
    )


def error_code(status_code: int) -> str:
    """Machine-readable name for an HTTP status, e.g. 404 -> "not_found"."""
    try:
        return HTTPStatus(status_code).phrase.lower().replace(" ", "_").replace("-", "_")
    except ValueError:
        return "error"


def error_response(
    message: str,
    status_code: int,
    *,
    error: Optional[str] = None,
    details: Optional[Any] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """
    Error envelope whose `data.error` names the failure, so clients can branch
    on it without parsing `message`. `error` defaults to the status name.
    """
    data: Dict[str, Any] = {"error": error or error_code(status_code)}
    if details is not None:
        data["details"] = details
    return api_response(data=data, message=message, status_code=status_code, headers=headers)
