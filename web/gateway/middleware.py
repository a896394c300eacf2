"""Request-scoped middleware for the checkout API.

- ``RequestIdMiddleware`` reuses the incoming ``X-Request-ID`` header or
  generates a UUIDv4, stores it on the request and in ``REQUEST_ID_CTX`` so
  logging filters and outbound HTTP adapters can pick it up, and echoes it
  back on the response.
- ``ApiSizeLimitMiddleware`` rejects oversized API payloads with a 413
  envelope before any view runs.
- ``CallerContextMiddleware`` attaches the identity forwarded by the
  upstream auth layer as ``request.caller``.
"""

import contextvars
import os
import uuid

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from apps.common.context import CallerContext

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
MAX_API_BYTES = int(os.getenv("API_MAX_BYTES", str(1 * 1024 * 1024)))


class RequestIdMiddleware(MiddlewareMixin):
    """Set and return a per-request identifier.

    Attributes:
        HEADER (str): Incoming header name in ``request.META`` casing.
        RESPONSE_HEADER (str): Header added to outgoing responses.
    """

    HEADER = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def process_request(self, request):
        rid = request.META.get(self.HEADER) or str(uuid.uuid4())
        request.request_id = rid
        request._request_id_token = REQUEST_ID_CTX.set(rid)

    def process_response(self, request, response):
        response[self.RESPONSE_HEADER] = getattr(request, "request_id", REQUEST_ID_CTX.get())
        token = getattr(request, "_request_id_token", None)
        if token is not None:
            REQUEST_ID_CTX.reset(token)
        return response


class ApiSizeLimitMiddleware(MiddlewareMixin):
    def process_request(self, request):
        if request.path.startswith("/api/"):
            clen = request.META.get("CONTENT_LENGTH")
            if clen and clen.isdigit() and int(clen) > MAX_API_BYTES:
                return JsonResponse(
                    {"title": "Payload too large", "status": 413, "code": "PayloadTooLarge"},
                    status=413,
                )


class CallerContextMiddleware(MiddlewareMixin):
    """Attach ``request.caller`` built from the forwarded identity headers."""

    def process_request(self, request):
        request.caller = CallerContext.from_meta(request.META)
