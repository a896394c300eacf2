"""Response envelope and the DRF exception handler.

Every response with a body is shaped as::

    {"title": ..., "status": ..., "code": ..., "data": ..., "errors": ...}

``data`` is only present on success and ``errors`` only when a raw
diagnostic is available. The exception handler resolves every error to
exactly one envelope so clients never receive a bare stack trace.
"""

import logging
from typing import Any, Optional

from django.db import DatabaseError, IntegrityError
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response

from .errors import ApiError, PersistenceError, RejectedRequestError

logger = logging.getLogger(__name__)


def envelope(
    status: int,
    data: Any = None,
    title: str = "",
    code: Optional[str] = None,
    errors: Any = None,
    headers: Optional[dict] = None,
) -> Response:
    """Build a DRF ``Response`` wrapped in the standard envelope."""
    body = envelope_body(status, data=data, title=title, code=code, errors=errors)
    return Response(body, status=status, headers=headers)


def envelope_body(status: int, data: Any = None, title: str = "", code: Optional[str] = None, errors: Any = None) -> dict:
    body: dict[str, Any] = {"title": title, "status": status, "code": code}
    if data is not None:
        body["data"] = data
    if errors is not None:
        body["errors"] = errors
    return body


def error_response(exc: ApiError) -> Response:
    return envelope(exc.status, title=exc.title, code=exc.code, errors=exc.errors)


# DRF exceptions mapped to (code, title)
_DRF_CODES = {
    drf_exceptions.NotAuthenticated: ("Unauthorized", "Authentication required"),
    drf_exceptions.AuthenticationFailed: ("Unauthorized", "Authentication failed"),
    drf_exceptions.PermissionDenied: ("Forbidden", "Permission denied"),
    drf_exceptions.Throttled: ("Throttled", "Too many requests"),
    drf_exceptions.ParseError: ("InvalidRequest", "Malformed request body"),
    drf_exceptions.UnsupportedMediaType: ("InvalidRequest", "Unsupported media type"),
    drf_exceptions.MethodNotAllowed: ("InvalidRequest", "Method not allowed"),
    drf_exceptions.NotFound: ("NotFound", "Not found"),
}


def api_exception_handler(exc, context):
    """DRF ``EXCEPTION_HANDLER`` rendering errors into the envelope.

    Args:
        exc: The exception raised while handling the request.
        context: DRF handler context (view, request, ...).

    Returns:
        Response: Envelope response for the error.
    """
    if isinstance(exc, ApiError):
        return error_response(exc)

    if isinstance(exc, Http404):
        exc = drf_exceptions.NotFound()

    if isinstance(exc, drf_exceptions.APIException):
        code, title = _DRF_CODES.get(type(exc), ("InvalidRequest", "Invalid request"))
        headers = {}
        wait = getattr(exc, "wait", None)
        if wait:
            headers["Retry-After"] = str(int(wait))
        # DRF downgrades auth errors to 403 when no authenticator sets WWW-Authenticate
        status = 401 if code == "Unauthorized" else exc.status_code
        return envelope(status, title=title, code=code, errors=exc.detail, headers=headers or None)

    # Database errors that escaped a service are still reported in the envelope.
    if isinstance(exc, IntegrityError):
        logger.warning("integrity error reached the handler", exc_info=exc)
        return error_response(RejectedRequestError(errors=str(exc)))
    if isinstance(exc, DatabaseError):
        logger.error("database error reached the handler", exc_info=exc)
        return error_response(PersistenceError(errors=str(exc)))

    # Anything else is a bug: let Django log it and return its 500.
    return None
