"""Uniform response envelope returned by every successful handler."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """`{statusCode, data, message, success}` wrapper."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status_code: int
    data: DataT
    message: str = "Success"
    success: bool = True


def api_response(status_code: int, data: DataT, message: str = "Success") -> ApiResponse[DataT]:
    """Build an envelope; `success` follows the status code."""

    return ApiResponse(status_code=status_code, data=data, message=message, success=status_code < 400)
