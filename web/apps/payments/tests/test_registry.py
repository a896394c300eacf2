import pytest
from django.apps import apps

from apps.payments.gateways import GatewayName, GatewayRegistry, UnknownGateway, build_registry
from apps.payments.gateways.braintree import BrainTreeGateway
from apps.payments.gateways.fake import FakeGateway
from apps.payments.models import PaymentMethod

CONFIG = {
    "brainTree": {"ENVIRONMENT": "sandbox", "PUBLIC_KEY": "p", "PRIVATE_KEY": "s"},
    "fake": {},
}


def test_build_registry_constructs_every_configured_gateway():
    registry = build_registry(CONFIG, "brainTree", timeout=7)
    assert isinstance(registry.get("brainTree"), BrainTreeGateway)
    assert isinstance(registry.get("fake"), FakeGateway)
    assert registry.active.get_name() == "brainTree"
    assert registry.get("brainTree").timeout == 7
    assert sorted(registry.names) == ["brainTree", "fake"]


def test_every_gateway_name_can_be_built():
    registry = build_registry({name.value: CONFIG.get(name.value, {}) for name in GatewayName}, "fake")
    assert {registry.get(name.value).name for name in GatewayName} == set(GatewayName)


def test_unknown_configured_gateway_is_refused():
    with pytest.raises(UnknownGateway):
        build_registry({"paypal": {}}, "paypal")


def test_active_gateway_must_be_configured():
    with pytest.raises(UnknownGateway):
        build_registry({"fake": {}}, "brainTree")


def test_lookup_of_unregistered_name():
    registry = build_registry({"fake": {}}, "fake")
    with pytest.raises(UnknownGateway):
        registry.get("brainTree")
    with pytest.raises(UnknownGateway):
        registry.get("stripe")


def test_registry_is_read_only():
    registry = GatewayRegistry({GatewayName.FAKE: FakeGateway()}, GatewayName.FAKE)
    with pytest.raises(TypeError):
        registry._gateways[GatewayName.BRAINTREE] = FakeGateway()


def test_registry_is_built_at_startup_from_settings():
    registry = apps.get_app_config("payments").gateways
    assert registry.active.get_name() == "fake"
    assert registry.get("brainTree").merchant_account_id == "test-merchant"


def test_payment_method_fee_rule():
    pm = PaymentMethod(name="Card", processing_fee=3, is_flat=False, min_processing_fee=10, max_processing_fee=100)
    assert pm.calculate_processing_fee(1000) == 30
    assert pm.calculate_processing_fee(100) == 10
    assert pm.calculate_processing_fee(10000) == 100
