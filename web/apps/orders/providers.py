"""Service provider helpers wiring the order orchestrators with their ports.

The Django-backed adapters are always used for persistence. The
notification port is the HTTP client for the notifications service when
``settings.USE_HTTP_ADAPTERS`` is truthy and an in-process stub otherwise
(tests and local development). Views resolve services through this module
so tests can monkeypatch any factory.
"""

from django.apps import apps
from django.conf import settings

from apps.catalog.repository import CatalogRepository
from apps.payments.gateways import GatewayRegistry

from .adapters import DjangoReferenceData, DjangoUnitOfWork, NotificationStub
from .domain import NotificationPort
from .http_adapters import HttpNotificationClient
from .repository import OrderRepository
from .services import OrderReadService, OrderService, PaymentCaptureService


def get_gateway_registry() -> GatewayRegistry:
    """Return the registry built by ``PaymentsConfig.ready``."""
    return apps.get_app_config("payments").gateways


def get_notifier() -> NotificationPort:
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        return HttpNotificationClient()
    return NotificationStub()


def get_order_service() -> OrderService:
    return OrderService(
        reference_data=DjangoReferenceData(),
        catalog=CatalogRepository(),
        orders=OrderRepository(),
        uow=DjangoUnitOfWork(),
        gateways=get_gateway_registry(),
        notifier=get_notifier(),
        currency=getattr(settings, "DEFAULT_CURRENCY", "USD"),
    )


def get_capture_service() -> PaymentCaptureService:
    return PaymentCaptureService(
        orders=OrderRepository(),
        uow=DjangoUnitOfWork(),
        gateways=get_gateway_registry(),
        notifier=get_notifier(),
        record_attempts=getattr(settings, "PAYMENT_RECORD_ATTEMPTS", 3),
    )


def get_read_service() -> OrderReadService:
    return OrderReadService(OrderRepository())
