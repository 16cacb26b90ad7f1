"""Response envelope shared by every endpoint."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """``{success, data, error}`` envelope."""
    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None
    message: Optional[str] = None


def ok(data=None, message: Optional[str] = None) -> dict:
    """Build a success envelope."""
    return {"success": True, "data": data, "error": None, "message": message}


def fail(error: str) -> dict:
    """Build a failure envelope."""
    return {"success": False, "data": None, "error": error}
