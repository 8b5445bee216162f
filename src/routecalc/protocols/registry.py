from __future__ import annotations

from typing import Dict, Type

from routecalc.protocols.base import RoutingProtocol
from routecalc.protocols.distance_vector import DistanceVectorRouter
from routecalc.protocols.link_state import LinkStateRouter

_REGISTRY: Dict[str, Type[RoutingProtocol]] = {
    DistanceVectorRouter.name: DistanceVectorRouter,
    LinkStateRouter.name: LinkStateRouter,
}


def register_protocol(name: str, protocol_cls: Type[RoutingProtocol]) -> None:
    _REGISTRY[name] = protocol_cls


def load_protocol(name: str) -> Type[RoutingProtocol]:
    if name not in _REGISTRY:
        raise KeyError(f"Unknown protocol: {name}. Available: {sorted(_REGISTRY.keys())}")
    return _REGISTRY[name]


def available_protocols() -> list[str]:
    return sorted(_REGISTRY.keys())
