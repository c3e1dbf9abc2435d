"""Error hierarchy for ESGTrack.

Every public service operation raises one of these, so callers always see
a typed error carrying an HTTP status, a stable code and a message.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import pydantic
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ESGTrackError(Exception):
    """Base exception for all ESGTrack errors."""

    status_code: int = 500
    default_code: str = "SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | list[Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Response body for this error."""
        payload: dict[str, Any] = {
            "success": False,
            "error": self.message,
            "code": self.code,
        }
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(ESGTrackError):
    """Raised for missing fields, malformed payloads or unsupported files."""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationError(ESGTrackError):
    """Raised when a mutating call carries no actor identity."""

    status_code = 401
    default_code = "UNAUTHORIZED"


class NotFoundError(ESGTrackError):
    """Raised when a record, metric or version is absent.

    Records owned by another company are reported the same way.
    """

    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(ESGTrackError):
    """Raised when a uniqueness constraint rejects a write."""

    status_code = 409
    default_code = "CONFLICT"


class OperationFailedError(ESGTrackError):
    """Wraps an unexpected failure; the original message is kept in details."""

    status_code = 500
    default_code = "OPERATION_FAILED"


def wrap_errors(
    code: str, message: str
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Re-raise anything escaping a service operation as an ESGTrackError.

    Args:
        code: Error code used when an unexpected exception is wrapped
        message: Human-readable prefix for the wrapped error

    Returns:
        Decorator for async service methods
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except ESGTrackError:
                raise
            except IntegrityError as exc:
                logger.warning("%s: integrity conflict: %s", message, exc.orig)
                raise ConflictError(
                    f"{message}: a concurrent change already replaced this record",
                    code="CONCURRENT_VERSION_CONFLICT",
                    details={"reason": str(exc.orig)},
                ) from exc
            except pydantic.ValidationError as exc:
                raise ValidationError(
                    f"{message}: invalid payload",
                    details=exc.errors(
                        include_url=False, include_context=False, include_input=False
                    ),
                ) from exc
            except Exception as exc:
                logger.exception("%s", message)
                raise OperationFailedError(
                    f"{message}: {exc}", code=code, details={"reason": str(exc)}
                ) from exc

        return wrapper

    return decorator
