"""Gateway middleware: request correlation and API payload limits.

``RequestIdMiddleware`` gives every request an identifier, reused from the
incoming ``X-Request-ID`` header or generated as a UUIDv4. The id is kept
on the request and in ``REQUEST_ID_CTX`` so log records emitted anywhere
downstream (coordinator, ledger, repositories) carry it, and it is echoed
back in the ``X-Request-ID`` response header.

``ApiSizeLimitMiddleware`` rejects oversized ``/api/`` bodies with 413
before they reach the views.
"""

import contextvars
import uuid

from django.conf import settings
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
DEFAULT_MAX_API_BYTES = 1 * 1024 * 1024


class RequestIdMiddleware(MiddlewareMixin):
    """Django middleware that sets and returns a per-request identifier.

    Attributes:
        HEADER (str): Incoming header name as found in ``request.META``.
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
    """Answer 413 PAYLOAD_TOO_LARGE for API bodies above ``API_MAX_BYTES``."""

    def process_request(self, request):
        if not request.path.startswith("/api/"):
            return None
        limit = getattr(settings, "API_MAX_BYTES", DEFAULT_MAX_API_BYTES)
        clen = request.META.get("CONTENT_LENGTH")
        if clen and clen.isdigit() and int(clen) > limit:
            return JsonResponse({"detail": "PAYLOAD_TOO_LARGE"}, status=413)
        return None
