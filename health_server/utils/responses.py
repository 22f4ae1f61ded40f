"""Response envelopes shared by the API routes."""

from typing import Any, Dict

from fastapi import status
from fastapi.responses import JSONResponse


def ok_response(message: str, data: Any = None, status_code: int = status.HTTP_200_OK, **extra: Any) -> JSONResponse:
    """Success envelope: ``{"ok": true, "message": ..., "data": ...}``."""
    content: Dict[str, Any] = {"ok": True, "message": message, **extra}
    if data is not None:
        content["data"] = data
    return JSONResponse(content=content, status_code=status_code)


def error_response(message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    """Failure envelope: ``{"ok": false, "error": ...}``."""
    return JSONResponse(
        content={"ok": False, "error": message},
        status_code=status_code
    )
