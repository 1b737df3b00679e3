"""Result envelope shared by every service operation."""

import enum
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Failure categories surfaced at the service boundary."""

    CONFIGURATION = "configuration"
    EXTERNAL_API = "external_api"
    NETWORK = "network"
    NOT_FOUND = "not_found"
    UNSUPPORTED = "unsupported"
    STORAGE = "storage"
    VALIDATION = "validation"
    INTERNAL = "internal"


@dataclass
class ServiceError:
    """A failure returned as a value.

    code is the HTTP status for EXTERNAL_API errors and 0 for NETWORK errors.
    """

    kind: ErrorKind
    message: str
    code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "code": self.code}


@dataclass
class ServiceResult(Generic[T]):
    """Uniform {success, data | error} envelope."""

    success: bool
    data: T | None = None
    error: ServiceError | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> "ServiceResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls, kind: ErrorKind, message: str, code: int | None = None
    ) -> "ServiceResult[T]":
        return cls(success=False, error=ServiceError(kind=kind, message=message, code=code))

    @classmethod
    def from_error(cls, error: ServiceError) -> "ServiceResult[T]":
        return cls(success=False, error=error)
