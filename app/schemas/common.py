from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: T | None = None


# ─── Error Envelope (documented shape of app/middleware/error_handler.py) ─────
class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorBody(BaseModel):
    code: str
    details: list[ErrorDetail] | None = None
    field: str | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: ErrorBody
    errors: list[str] | None = None          # validation failures only
    refreshRequired: bool | None = None      # set when the client must log in again


def success_response(message: str, data: Any = None) -> dict:
    return {"success": True, "message": message, "data": data}
