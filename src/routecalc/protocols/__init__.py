"""Routing protocol engines."""

from routecalc.protocols.base import RoutingProtocol
from routecalc.protocols.distance_vector import DistanceVectorRouter
from routecalc.protocols.link_state import LinkStateRouter
from routecalc.protocols.registry import available_protocols, load_protocol, register_protocol

__all__ = [
    "RoutingProtocol",
    "DistanceVectorRouter",
    "LinkStateRouter",
    "available_protocols",
    "load_protocol",
    "register_protocol",
]
