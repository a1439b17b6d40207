# backend/schemas/common.py
from pydantic import BaseModel
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

# Page metadata attached to list responses
class Pagination(BaseModel):
    total: int
    page: int
    page_size: int
    pages: int

# Envelope shared by every endpoint: {success, data, message, pagination}
class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    pagination: Optional[Pagination] = None

# Body returned by the exception handlers in main.py
class ErrorResponse(BaseModel):
    success: bool = False
    error: str

# Shared payload for the status endpoints
class StatusUpdate(BaseModel):
    status: str
