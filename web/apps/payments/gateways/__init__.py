"""Payment gateway registry.

``build_registry`` runs once at startup (``PaymentsConfig.ready``) and
returns an immutable ``GatewayRegistry`` holding every configured gateway
plus the name of the active one. New orders record the active gateway's
name; captures dispatch on the name stored on the order, so changing
``ACTIVE_PAYMENT_GATEWAY`` never strands in-flight orders.
"""

from types import MappingProxyType
from typing import Any, Callable, Mapping

from .braintree import BrainTreeGateway
from .fake import FakeGateway
from .port import ChargeResult, GatewayError, GatewayName, PaymentCredential, PaymentGateway

__all__ = [
    "ChargeResult",
    "GatewayError",
    "GatewayName",
    "GatewayRegistry",
    "PaymentCredential",
    "PaymentGateway",
    "UnknownGateway",
    "build_registry",
]


class UnknownGateway(LookupError):
    """No gateway is registered under the requested name."""


class GatewayRegistry:
    """Read-only set of gateways keyed by ``GatewayName``."""

    def __init__(self, gateways: Mapping[GatewayName, PaymentGateway], active: GatewayName):
        if active not in gateways:
            raise UnknownGateway(f"Active gateway {active.value!r} is not configured")
        for name, gateway in gateways.items():
            if gateway.name != name:
                raise ValueError(f"Gateway registered as {name.value!r} reports {gateway.name.value!r}")
        self._gateways = MappingProxyType(dict(gateways))
        self._active = active

    @property
    def active(self) -> PaymentGateway:
        return self._gateways[self._active]

    @property
    def names(self) -> list[str]:
        return [name.value for name in self._gateways]

    def get(self, name: str) -> PaymentGateway:
        try:
            return self._gateways[GatewayName(name)]
        except (ValueError, KeyError):
            raise UnknownGateway(f"Payment gateway {name!r} is not registered") from None


_FACTORIES: dict[GatewayName, Callable[[Mapping[str, Any], float], PaymentGateway]] = {
    GatewayName.BRAINTREE: BrainTreeGateway.from_options,
    GatewayName.FAKE: lambda options, timeout: FakeGateway(),
}

_missing = set(GatewayName) - set(_FACTORIES)
if _missing:
    raise RuntimeError(f"No gateway factory for: {sorted(n.value for n in _missing)}")


def build_registry(config: Mapping[str, Mapping[str, Any]], active: str, timeout: float = 20.0) -> GatewayRegistry:
    """Construct every configured gateway.

    Args:
        config: ``PAYMENT_GATEWAYS`` setting (gateway name -> options).
        active: ``ACTIVE_PAYMENT_GATEWAY`` setting.
        timeout: Deadline applied to outbound gateway calls.

    Raises:
        UnknownGateway: When a configured or the active name is not a known gateway.
    """
    gateways = {}
    for raw_name, options in config.items():
        try:
            name = GatewayName(raw_name)
        except ValueError:
            raise UnknownGateway(f"Unsupported payment gateway {raw_name!r}") from None
        gateways[name] = _FACTORIES[name](options or {}, timeout)
    try:
        active_name = GatewayName(active)
    except ValueError:
        raise UnknownGateway(f"Unsupported active payment gateway {active!r}") from None
    return GatewayRegistry(gateways, active_name)
