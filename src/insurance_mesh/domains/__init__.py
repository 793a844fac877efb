"""Mock insurance domain services.

Each module builds an ActionRegistry through explicit register() calls. The
registries are served one per process by ``create_agent_app`` or embedded in
the gateway through LocalAgent.
"""

from typing import Callable

from insurance_mesh.actions import ActionRegistry
from insurance_mesh.domains import claims, customer, policy, underwriting
from insurance_mesh.domains.common import Clock, IdGenerator

RegistryFactory = Callable[..., ActionRegistry]

DOMAIN_REGISTRIES: dict[str, RegistryFactory] = {
    policy.AGENT_NAME: policy.create_registry,
    claims.AGENT_NAME: claims.create_registry,
    underwriting.AGENT_NAME: underwriting.create_registry,
    customer.AGENT_NAME: customer.create_registry,
}

DEFAULT_PORTS: dict[str, int] = {
    policy.AGENT_NAME: 7871,
    claims.AGENT_NAME: 7872,
    underwriting.AGENT_NAME: 7873,
    customer.AGENT_NAME: 7874,
}


def create_domain_registry(
    name: str, ids: IdGenerator | None = None, clock: Clock | None = None
) -> ActionRegistry:
    """Build the registry for a named domain service.

    Raises:
        KeyError: If the name is not a known domain
    """
    try:
        factory = DOMAIN_REGISTRIES[name]
    except KeyError:
        raise KeyError(
            f"Unknown domain '{name}', expected one of: {', '.join(DOMAIN_REGISTRIES)}"
        ) from None
    return factory(ids=ids, clock=clock)


__all__ = [
    "Clock",
    "DEFAULT_PORTS",
    "DOMAIN_REGISTRIES",
    "IdGenerator",
    "create_domain_registry",
]
