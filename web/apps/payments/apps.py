from django.apps import AppConfig
from django.conf import settings


class PaymentsConfig(AppConfig):
    name = "apps.payments"
    label = "payments"

    gateways = None

    def ready(self):
        from .gateways import build_registry

        # Built once per process; read-only while serving requests.
        self.gateways = build_registry(
            settings.PAYMENT_GATEWAYS,
            settings.ACTIVE_PAYMENT_GATEWAY,
            timeout=getattr(settings, "PAYMENT_GATEWAY_TIMEOUT_SECS", 20.0),
        )
