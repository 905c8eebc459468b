"""
Explicit success/failure results for service-layer operations.

Services return a ServiceResult for every expected outcome (bad input, missing
rows, upstream failures) instead of raising. Routers translate the error type
into an HTTP status.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    # Token lookups: never distinguishes "never existed" from "already used"
    NOT_FOUND_OR_EXPIRED = "not_found_or_expired"
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"
    PERSISTENCE = "persistence"
    UPSTREAM = "upstream"
    UNSUPPORTED_DESTINATION = "unsupported_destination"


@dataclass
class ServiceResult:
    """Outcome of a service call."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_type: Optional[ErrorType] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ServiceResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error_type: ErrorType, error: str) -> "ServiceResult":
        return cls(success=False, error=error, error_type=error_type)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": self.error,
            "error_type": self.error_type.value if self.error_type else None,
        }


HTTP_STATUS = {
    ErrorType.VALIDATION: 400,
    ErrorType.UNSUPPORTED_DESTINATION: 400,
    ErrorType.NOT_FOUND: 404,
    ErrorType.NOT_FOUND_OR_EXPIRED: 404,
    ErrorType.INVALID_OR_EXPIRED_TOKEN: 404,
    ErrorType.UPSTREAM: 502,
    ErrorType.PERSISTENCE: 500,
}


def http_status_for(result: ServiceResult) -> int:
    """Status code a router should answer with for a failed result"""
    return HTTP_STATUS.get(result.error_type, 500)
