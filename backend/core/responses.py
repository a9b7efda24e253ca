"""JSON envelope shared by every API response.

Success: ``{"status": "success", "message": ..., "data": ..., "code": 200}``
Error:   ``{"status": "error", "message": ..., "code": 4xx/5xx}``
"""

from typing import Any

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_body(data: Any = None, message: str = 'Operation successful', code: int = status.HTTP_200_OK) -> dict:
    body: dict[str, Any] = {'status': 'success', 'message': message}
    if data is not None:
        body['data'] = jsonable_encoder(data)
    body['code'] = code
    return body


def error_body(message: str = 'An error occurred', code: int = 500, errors: dict[str, str] | None = None) -> dict:
    body: dict[str, Any] = {'status': 'error', 'message': message, 'code': code}
    if errors:
        body['errors'] = errors
    return body


def success(data: Any = None, message: str = 'Operation successful', code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=code, content=success_body(data, message, code))


def created(data: Any, message: str = 'Resource created successfully') -> JSONResponse:
    return success(data, message, status.HTTP_201_CREATED)
