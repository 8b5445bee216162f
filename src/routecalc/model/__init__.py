"""Routing data model shared by both protocol engines."""

from routecalc.model.routing import (
    MAX_SEQUENCE_NUMBER,
    DistanceTableEntry,
    Link,
    LinkStatePacket,
    RoutingTableEntry,
    validate_cost,
)

__all__ = [
    "MAX_SEQUENCE_NUMBER",
    "DistanceTableEntry",
    "Link",
    "LinkStatePacket",
    "RoutingTableEntry",
    "validate_cost",
]
