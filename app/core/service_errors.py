"""
Typed errors for failures in external collaborators.

Every outbound dependency (blockchain RPC, database, price feed, payment
gateway) reports failures as a ServiceError tagged with the collaborator
that failed, so route handlers can map them to responses uniformly.

Usage:
    from app.core.service_errors import classify

    try:
        balance = await rpc.get_balance(address)
    except Exception as e:
        raise classify(e, "blockchain") from e
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type

import structlog

logger = structlog.get_logger(__name__)

__all__ = [
    "ServiceErrorKind",
    "ServiceError",
    "BlockchainError",
    "DatabaseError",
    "PriceServiceError",
    "PaymentServiceError",
    "classify",
    "UNKNOWN_ERROR_MESSAGE",
]

UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"


class ServiceErrorKind(str, Enum):
    GENERIC = "generic"
    BLOCKCHAIN = "blockchain"
    DATABASE = "database"
    PRICE = "price"
    PAYMENT = "payment"


class ServiceError(Exception):
    """Base error for a failed call to an external collaborator."""

    kind: ServiceErrorKind = ServiceErrorKind.GENERIC

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "name": self.name,
            "message": self.message,
            "code": self.code,
        }

    def __repr__(self) -> str:
        if self.code is not None:
            return f"{self.name}({self.message!r}, code={self.code!r})"
        return f"{self.name}({self.message!r})"


class BlockchainError(ServiceError):
    kind = ServiceErrorKind.BLOCKCHAIN


class DatabaseError(ServiceError):
    kind = ServiceErrorKind.DATABASE


class PriceServiceError(ServiceError):
    kind = ServiceErrorKind.PRICE


class PaymentServiceError(ServiceError):
    kind = ServiceErrorKind.PAYMENT


# service name -> (error class, message prefix)
_CLASSIFICATION: Dict[str, Tuple[Type[ServiceError], str]] = {
    "blockchain": (BlockchainError, "Blockchain operation failed"),
    "database": (DatabaseError, "Database operation failed"),
    "price": (PriceServiceError, "Price service failed"),
    "payment": (PaymentServiceError, "Payment operation failed"),
}
_FALLBACK: Tuple[Type[ServiceError], str] = (ServiceError, "Service operation failed")


def _error_message(error: Any) -> str:
    if not isinstance(error, BaseException):
        return UNKNOWN_ERROR_MESSAGE
    try:
        return str(error)
    except Exception:
        return type(error).__name__


def _describe(error: Any) -> str:
    try:
        return repr(error)
    except Exception:
        return f"<unprintable {type(error).__name__}>"


def _error_code(error: Any) -> Optional[str]:
    try:
        code = getattr(error, "code", None)
    except Exception:
        return None
    if isinstance(code, (int, str)) and not isinstance(code, bool):
        return str(code)
    return None


def classify(error: Any, service_name: str) -> ServiceError:
    """
    Wrap an arbitrary caught error into the ServiceError for a collaborator.

    Errors that are already ServiceErrors are returned as-is. Anything else
    is logged and relabelled according to service_name; unknown names fall
    back to the generic ServiceError. Never raises: the caller raises the
    returned value.

    Args:
        error: The caught error (any value)
        service_name: "blockchain", "database", "price", "payment" or other

    Returns:
        The classified ServiceError
    """
    if isinstance(error, ServiceError):
        return error

    logger.error(
        "Service call failed",
        service=service_name,
        error_type=type(error).__name__,
        error=_describe(error),
    )

    error_cls, prefix = _CLASSIFICATION.get(service_name, _FALLBACK)
    message = f"{prefix}: {_error_message(error)}"

    code = _error_code(error) if error_cls is BlockchainError else None
    classified = error_cls(message, code=code)
    if isinstance(error, BaseException):
        classified.__cause__ = error
    return classified
