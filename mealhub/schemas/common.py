# mealhub/schemas/common.py
from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """
    Base for everything that crosses the wire.

    JSON uses camelCase (`totalAmount`), Python uses snake_case; both are
    accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands datetimes back naive; they are always stored as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ApiResponse(CamelModel, Generic[T]):
    """
    Uniform response envelope:

      { success, data?, error?, message? }
    """

    success: bool
    data: T | None = None
    error: str | None = None
    message: str | None = None


class PaginatedResponse(CamelModel, Generic[T]):
    """Envelope for list endpoints; adds `pagination`."""

    success: bool
    data: list[T] = []
    error: str | None = None
    message: str | None = None
    pagination: Pagination | None = None
