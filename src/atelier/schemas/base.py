from typing import Any, Generic, Optional, TypeVar
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

DataT = TypeVar("DataT")


class BaseSchema(BaseModel):
    """Base schema with common fields."""
    model_config = ConfigDict(from_attributes=True)


class TimestampSchema(BaseSchema):
    """Schema with timestamp fields."""
    created_at: datetime
    updated_at: datetime


class IDSchema(BaseSchema):
    """Schema with ID field."""
    id: UUID


class BaseResponseSchema(TimestampSchema, IDSchema):
    """Base response schema with ID and timestamp fields."""
    pass


class SuccessResponse(BaseModel, Generic[DataT]):
    """Envelope returned by every successful team/auth endpoint."""
    success: bool = True
    message: Optional[str] = None
    data: Optional[DataT] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[Any] = None
