"""
Response envelope: every endpoint answers ``{success, data?, error?, details?}``.
"""
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for API payloads: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None
    details: Optional[List[str]] = None


class MessageData(CamelModel):
    message: str


def ok(data: T) -> ApiResponse[T]:
    return ApiResponse(success=True, data=data)


def message(text: str) -> ApiResponse[MessageData]:
    return ApiResponse(success=True, data=MessageData(message=text))


def error_body(error: str, details: Optional[List[str]] = None) -> dict:
    body = {"success": False, "error": error}
    if details:
        body["details"] = details
    return body
