import logging

from django.apps import apps
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_view(_request):
    db_ok = False
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
        db_ok = True
    except DatabaseError:
        logger.warning("health check: database unreachable", exc_info=True)

    registry = apps.get_app_config("payments").gateways
    gateways_ok = registry is not None
    gateways = {"ok": gateways_ok}
    if gateways_ok:
        gateways.update(active=registry.active.get_name(), registered=registry.names)

    ok = db_ok and gateways_ok
    code = 200 if ok else 503
    return JsonResponse(
        {"ok": ok, "components": {"db": {"ok": db_ok}, "payment_gateways": gateways}},
        status=code,
    )
