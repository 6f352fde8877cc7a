"""Shared response envelope schemas."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    """Base schema exposing camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[DataT]):
    """Success envelope returned by every endpoint."""

    success: bool = True
    message: str | None = None
    data: DataT | None = None


class ErrorDetail(BaseModel):
    """A single failing input field."""

    field: str
    message: str
    type: str


class ErrorResponse(CamelModel):
    """Error envelope produced by the exception handlers."""

    success: bool = False
    error: str
    code: str
    message: str
    status_code: int
    details: list[ErrorDetail] | dict[str, Any] | None = None
    stack: str | None = None


class PageInfo(CamelModel):
    """Pagination metadata for list responses."""

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)
    has_more: bool
