"""Domain exceptions and their HTTP mapping.

Services raise these; routers let them propagate and the handlers
registered here turn them into JSON responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StudioError(Exception):
    """Base exception for service errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message}


class NotFoundError(StudioError):
    """Client, package or file missing."""

    status_code = 404


class ValidationError(StudioError):
    """Empty required field or malformed input."""

    status_code = 422


class PermissionDeniedError(StudioError):
    """Actor is not allowed to perform the operation."""

    status_code = 403


class InvalidTransitionError(StudioError):
    """Requested state change is not wired from the current state."""

    status_code = 409


class QuotaUndefinedError(StudioError):
    """Client has no package, so there is no photo quota to check against."""

    status_code = 409


class QuotaExceededError(StudioError):
    """Destination stage would exceed the package's photo quota."""

    status_code = 409

    def __init__(self, max_allowed: int, current: int, requested: int):
        super().__init__(
            f"Photo limit reached: package allows {max_allowed}, "
            f"{current} already present, {requested} requested"
        )
        self.max_allowed = max_allowed
        self.current = current
        self.requested = requested

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "max": self.max_allowed,
            "current": self.current,
            "requested": self.requested,
        }


class StoreError(StudioError):
    """Database or blob storage operation failed."""

    status_code = 502


class BlobNotFoundError(StoreError):
    """Object key absent from its bucket."""

    status_code = 404


class PartialBatchFailure(StudioError):
    """
    Multi-file operation where some files failed.

    Files that succeeded stay applied; `failed` maps file name -> reason.
    """

    def __init__(
        self,
        operation: str,
        succeeded: list[str],
        failed: dict[str, str],
        warnings: list[str] | None = None,
    ):
        super().__init__(
            f"{operation}: {len(succeeded)} succeeded, {len(failed)} failed"
        )
        self.operation = operation
        self.succeeded = succeeded
        self.failed = failed
        self.warnings = warnings or []

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 207 if self.succeeded else 502

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "succeeded_count": len(self.succeeded),
            "succeeded": self.succeeded,
            "failed": [{"name": name, "reason": reason} for name, reason in self.failed.items()],
            "warnings": self.warnings,
        }


async def _studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    if isinstance(exc, (StoreError, PartialBatchFailure)):
        logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON handler for every StudioError subclass."""
    app.add_exception_handler(StudioError, _studio_error_handler)
