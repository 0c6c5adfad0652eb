"""Common Pydantic schemas shared across the API."""

from datetime import datetime
from typing import Annotated, Any, Generic, Optional, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from core.utils.datetime import ensure_aware


T = TypeVar("T")

# Stored instants are UTC; drivers without zone support hand them back naive
UtcDatetime = Annotated[datetime, AfterValidator(ensure_aware)]


class CamelModel(BaseModel):
    """Base for every request/response body: camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )


class PaginationParams(BaseModel):
    """Pagination query parameters."""

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    page_size: int = Field(default=20, ge=1, le=100, description="Items per page")

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if v > 100:
            raise ValueError("Page size cannot exceed 100")
        return v

    @property
    def offset(self) -> int:
        """Calculate offset from page and page_size."""
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


class PaginatedResponse(CamelModel, Generic[T]):
    """Paginated list payload."""

    items: list[T] = Field(description="List of items for this page")
    total: int = Field(ge=0, description="Total number of items across all pages")
    page: int = Field(ge=1, description="Current page number")
    page_size: int = Field(ge=1, le=100, description="Items per page")
    total_pages: int = Field(ge=0, description="Total number of pages")

    @classmethod
    def create(
        cls,
        items: list[T],
        total: int,
        pagination: PaginationParams,
    ) -> "PaginatedResponse[T]":
        total_pages = (total + pagination.page_size - 1) // pagination.page_size
        return cls(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=total_pages,
        )


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> dict:
        """Serialized envelope with ``None`` members dropped at the top level."""
        body: dict[str, Any] = {"success": True}
        if message is not None:
            body["message"] = message
        if data is not None:
            body["data"] = dump(data)
        return body


def dump(value: Any) -> Any:
    """camelCase-serialize models nested anywhere inside ``value``."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, dict):
        return {key: dump(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [dump(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class ErrorResponse(CamelModel):
    """Failure envelope, documented for OpenAPI."""

    success: bool = False
    message: str = Field(description="Human readable reason")
    code: str = Field(description="Error code for programmatic handling")
    error: Optional[str] = Field(None, description="Raw error text (debug only)")


class TimestampFields(CamelModel):
    created_at: UtcDatetime
    updated_at: UtcDatetime
