"""
JSON envelope shared by the admin and auth endpoints:
{"success": bool, "data"?: ..., "error"?: str, "message"?: str}
"""
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(data: Any = None, message: Optional[str] = None, status_code: int = 200) -> JSONResponse:
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def fail(error: str, status_code: int = 400, **extra: Any) -> JSONResponse:
    body = {"success": False, "error": error}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def not_found(resource: str) -> JSONResponse:
    return fail(f"{resource} not found", status_code=404)
