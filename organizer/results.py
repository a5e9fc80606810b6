"""Service results: ``Ok(value)`` or ``Err(error)``.

Services never raise for expected failures; routers unwrap the result and map the
error's ``status_code`` onto the HTTP response.
"""

from dataclasses import dataclass
from typing import ClassVar, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class OrganizerError:
    message: str
    status_code: ClassVar[int] = 500


@dataclass(frozen=True)
class NotFound(OrganizerError):
    """Row is absent or belongs to another user."""

    status_code: ClassVar[int] = 404


@dataclass(frozen=True)
class AccessDenied(OrganizerError):
    """A referenced row exists but is owned by another user."""

    status_code: ClassVar[int] = 403


@dataclass(frozen=True)
class ReferentialConflict(OrganizerError):
    """Mutation blocked by dependent or colliding rows."""

    status_code: ClassVar[int] = 409


@dataclass(frozen=True)
class ValidationFailure(OrganizerError):
    status_code: ClassVar[int] = 400


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: OrganizerError


Result = Union[Ok[T], Err]
