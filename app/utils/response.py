# app/utils/response.py

from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


def success_response(message: str, data: Optional[Any] = None) -> Dict[str, Any]:
    """Envelope shared by every successful endpoint."""
    return {
        "success": True,
        "message": message,
        "data": data,
    }


class APIResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None
