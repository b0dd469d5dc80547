"""Health endpoint: liveness plus a database round trip."""

import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger("orders")


def health_view(_request):
    db_ok = False
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
        db_ok = True
    except DatabaseError:
        logger.warning("health check: database unreachable", exc_info=True)

    code = 200 if db_ok else 503
    return JsonResponse(
        {"ok": db_ok, "components": {"db": {"ok": db_ok}}},
        status=code,
    )
