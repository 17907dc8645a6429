"""
Uniform response envelope: {"error": bool, "data": ..., "message": str | None}.
"""
from typing import Any, Optional
from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse

from app.core.errors import AccessError


def envelope(data: Any = None, message: Optional[str] = None) -> dict:
    return {"error": False, "data": jsonable_encoder(data), "message": message}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": True, "data": None, "message": message},
    )


def access_error_response(exc: AccessError) -> JSONResponse:
    return error_response(exc.status_code, exc.public_message)
