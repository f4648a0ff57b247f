"""Domain error taxonomy and the DRF exception handler.

Every module raises subclasses of the four categories below.  Callers
decide whether to retry from the category alone:

- ``InvalidArgument``: malformed or out-of-range input.  Fix the payload.
- ``FailedPrecondition``: the request conflicts with stored state.
  Retrying verbatim will not help.
- ``NotFound``: the referenced entity does not exist.
- ``Unavailable``: a required dependency could not be reached.  Safe to retry.

The API layer never catches these one by one: ``domain_exception_handler``
renders them (and every DRF exception) in a single error envelope::

    {"type": "client_error",
     "errors": [{"code": "not_found", "detail": "...", "attr": null}]}
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


class DomainError(Exception):
    """Base class for all domain errors."""

    code: str = "internal"
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class InvalidArgument(DomainError):
    """Malformed or out-of-range input."""

    code = "invalid_argument"
    http_status = status.HTTP_400_BAD_REQUEST


class FailedPrecondition(DomainError):
    """The operation conflicts with the current stored state."""

    code = "failed_precondition"
    http_status = status.HTTP_409_CONFLICT


class NotFound(DomainError):
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class Unavailable(DomainError):
    """A required dependency (persistence, pricing) could not be reached."""

    code = "unavailable"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE


# ---------------------------------------------------------------------------
# DRF integration
# ---------------------------------------------------------------------------


def _error_type(http_status: int, exc: Exception) -> str:
    if isinstance(exc, (ValidationError, InvalidArgument)):
        return "validation_error"
    if http_status >= 500:
        return "server_error"
    return "client_error"


def _flatten_validation_detail(detail: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    """Flatten nested DRF validation details into ``{code, detail, attr}`` items."""
    if isinstance(detail, dict):
        errors: List[Dict[str, Any]] = []
        for key, value in detail.items():
            if isinstance(key, int):
                # ListSerializer errors keyed by item index.
                child = f"{attr}[{key}]" if attr else str(key)
            else:
                child = key if attr is None else f"{attr}.{key}"
            errors.extend(_flatten_validation_detail(value, child))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                child = f"{attr}[{index}]" if attr else str(index)
                errors.extend(_flatten_validation_detail(value, child))
            else:
                errors.extend(_flatten_validation_detail(value, attr))
        return errors
    return [
        {
            "code": getattr(detail, "code", "invalid"),
            "detail": str(detail),
            "attr": None if attr == "non_field_errors" else attr,
        }
    ]


def domain_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """Render domain and DRF exceptions in the standard error envelope."""
    if isinstance(exc, DomainError):
        log = logger.bind(error_code=exc.code, attr=exc.field)
        if exc.http_status >= 500:
            log.error("api.domain_error", detail=exc.message)
        else:
            log.info("api.domain_error", detail=exc.message)
        return Response(
            {
                "type": _error_type(exc.http_status, exc),
                "errors": [
                    {"code": exc.code, "detail": exc.message, "attr": exc.field}
                ],
            },
            status=exc.http_status,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ValidationError):
        errors = _flatten_validation_detail(exc.detail)
    elif isinstance(exc, APIException):
        errors = [
            {
                "code": getattr(exc.detail, "code", exc.default_code),
                "detail": str(exc.detail),
                "attr": None,
            }
        ]
    else:
        errors = [{"code": "error", "detail": str(exc), "attr": None}]

    response.data = {
        "type": _error_type(response.status_code, exc),
        "errors": errors,
    }
    return response
