from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from routecalc.core.types import Cost, Distance, LinkStatus, RouterId

MAX_SEQUENCE_NUMBER = 2**32 - 1


def validate_cost(cost: Any) -> Cost:
    if isinstance(cost, bool) or not isinstance(cost, int):
        raise ValueError(f"Link cost must be a positive integer, got {cost!r}")
    if cost <= 0:
        raise ValueError(f"Link cost must be a positive integer, got {cost}")
    return cost


@dataclass(frozen=True)
class Link:
    source: RouterId
    destination: RouterId
    cost: Cost
    status: LinkStatus = LinkStatus.UP

    @property
    def is_up(self) -> bool:
        return self.status == LinkStatus.UP

    def reversed(self) -> "Link":
        return Link(self.destination, self.source, self.cost, self.status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "destination": self.destination,
            "cost": int(self.cost),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class DistanceTableEntry:
    destination: RouterId
    distance: Distance
    next_hop: Optional[RouterId]
    last_updated: float = 0.0

    def __post_init__(self) -> None:
        if self.distance.is_finite != (self.next_hop is not None):
            raise ValueError(
                f"next_hop must be set iff distance is finite: {self.destination} "
                f"distance={self.distance!r} next_hop={self.next_hop!r}"
            )

    @classmethod
    def unreachable(cls, destination: RouterId, last_updated: float = 0.0) -> "DistanceTableEntry":
        return cls(destination, Distance.UNREACHABLE, None, last_updated)


@dataclass(frozen=True)
class RoutingTableEntry:
    destination: RouterId
    next_hop: RouterId
    cost: Cost

    def to_dict(self) -> Dict[str, Any]:
        return {"destination": self.destination, "next_hop": self.next_hop, "cost": int(self.cost)}


Adjacency = Dict[RouterId, Tuple[Cost, LinkStatus]]


@dataclass(frozen=True)
class LinkStatePacket:
    origin_router: RouterId
    sequence_number: int
    age: int = 0
    links: Tuple[Link, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not 0 < self.sequence_number <= MAX_SEQUENCE_NUMBER:
            raise ValueError(f"LSP sequence number out of range: {self.sequence_number}")
        for link in self.links:
            if link.source != self.origin_router:
                raise ValueError(
                    f"LSP from {self.origin_router} carries a link sourced at {link.source}"
                )

    @classmethod
    def from_adjacency(
        cls,
        origin: RouterId,
        sequence_number: int,
        adjacency: Mapping[RouterId, Tuple[Cost, LinkStatus]],
        age: int = 0,
    ) -> "LinkStatePacket":
        links = tuple(
            Link(origin, neighbor, int(cost), LinkStatus(status))
            for neighbor, (cost, status) in sorted(adjacency.items())
        )
        return cls(origin_router=origin, sequence_number=sequence_number, age=age, links=links)

    def to_adjacency(self) -> Adjacency:
        return {link.destination: (link.cost, link.status) for link in self.links}

    def up_links(self) -> Tuple[Link, ...]:
        return tuple(link for link in self.links if link.is_up)

    def copy(self, age: Optional[int] = None) -> "LinkStatePacket":
        return LinkStatePacket(
            origin_router=self.origin_router,
            sequence_number=self.sequence_number,
            age=self.age if age is None else int(age),
            links=tuple(Link(l.source, l.destination, l.cost, l.status) for l in self.links),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin_router": self.origin_router,
            "sequence_number": int(self.sequence_number),
            "age": int(self.age),
            "links": [link.to_dict() for link in self.links],
        }
