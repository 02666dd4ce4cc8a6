"""
Response envelope shared by every JSON endpoint:
``{status, success, message, data | error}``.
"""
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema that speaks camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(BaseModel, Generic[T]):
    status: int
    success: bool
    message: str
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, message: str, data=None, status: int = 200) -> "ApiResponse":
        return cls(status=status, success=True, message=message, data=data)

    @classmethod
    def fail(cls, status: int, message: str, error: Optional[str] = None) -> "ApiResponse":
        return cls(status=status, success=False, message=message, error=error)
