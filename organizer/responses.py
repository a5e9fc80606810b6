from typing import Any, Generic, Optional, TypeVar

from fastapi import HTTPException
from pydantic import BaseModel

from organizer.results import Err, Result

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    errors: Optional[list[Any]] = None


def envelope(data: Any = None, message: Optional[str] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def unwrap(result: Result[T]) -> T:
    if isinstance(result, Err):
        raise HTTPException(status_code=result.error.status_code, detail=result.error.message)
    return result.value
