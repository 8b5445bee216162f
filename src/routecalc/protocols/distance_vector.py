from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional

from routecalc.core.types import Cost, Distance, DistanceVectorUpdate, RouterId
from routecalc.model.routing import DistanceTableEntry, RoutingTableEntry
from routecalc.protocols.base import RoutingProtocol

log = logging.getLogger("routecalc.dv")


class DistanceVectorRouter(RoutingProtocol):
    """Distributed Bellman-Ford with split horizon and poison reverse.

    The router keeps one ``DistanceTableEntry`` per destination it has ever
    heard of. Entries are relaxed as neighbor vectors arrive and demoted to
    ``Distance.UNREACHABLE`` (never deleted) when their next hop goes away.
    """

    name = "distance_vector"
    MSG_UPDATE = DistanceVectorUpdate.msg_type
    STAT_KEYS = ("updates_sent", "updates_received", "route_changes", "dropped_updates")

    def __init__(
        self,
        node_id: RouterId,
        config: dict | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(node_id, config)
        self.split_horizon = bool(self.config.get("split_horizon", True))
        self.poison_reverse = bool(self.config.get("poison_reverse", True))
        max_distance = self.config.get("max_distance")
        self.max_distance: Optional[int] = None if max_distance is None else int(max_distance)
        self._clock = clock

        self._neighbors: Dict[RouterId, Cost] = {}
        self._neighbor_vectors: Dict[RouterId, Dict[RouterId, Distance]] = {}
        self._table: Dict[RouterId, DistanceTableEntry] = {
            self.node_id: DistanceTableEntry(self.node_id, Distance.finite(0), self.node_id, self._clock())
        }

    def neighbors(self) -> Dict[RouterId, Cost]:
        return dict(self._neighbors)

    @property
    def distance_table(self) -> Dict[RouterId, DistanceTableEntry]:
        return dict(self._table)

    @property
    def routing_table(self) -> Dict[RouterId, RoutingTableEntry]:
        table: Dict[RouterId, RoutingTableEntry] = {}
        for dst in sorted(self._table):
            entry = self._table[dst]
            if entry.distance.is_finite and entry.next_hop is not None:
                table[dst] = RoutingTableEntry(dst, entry.next_hop, entry.distance.value)
        return table

    def add_neighbor(self, neighbor_id: RouterId, cost: Any) -> None:
        neighbor_id, cost = self._check_neighbor(neighbor_id, cost)
        old_cost = self._neighbors.get(neighbor_id)
        self._neighbors[neighbor_id] = cost
        self._install(DistanceTableEntry(neighbor_id, Distance.finite(cost), neighbor_id, self._clock()))
        if old_cost != cost:
            log.debug("router %s: link to %s cost %s -> %s", self.node_id, neighbor_id, old_cost, cost)

    def remove_neighbor(self, neighbor_id: RouterId) -> None:
        neighbor_id = str(neighbor_id)
        if neighbor_id not in self._neighbors:
            return
        del self._neighbors[neighbor_id]
        self._neighbor_vectors.pop(neighbor_id, None)
        now = self._clock()
        for dst, entry in sorted(self._table.items()):
            if dst != self.node_id and entry.next_hop == neighbor_id:
                self._install(DistanceTableEntry.unreachable(dst, now))
        log.debug("router %s: link to %s removed", self.node_id, neighbor_id)

    def receive_distance_vector(self, sender: RouterId, vector: Mapping[RouterId, Any]) -> bool:
        sender = str(sender)
        link_cost = self._neighbors.get(sender)
        if link_cost is None:
            self._count("dropped_updates")
            log.debug("router %s: dropped vector from non-neighbor %s", self.node_id, sender)
            return False

        parsed = {str(dst): Distance.coerce(raw) for dst, raw in vector.items()}
        self._neighbor_vectors[sender] = dict(parsed)
        self._count("updates_received")

        updated = False
        now = self._clock()
        for dst in sorted(parsed):
            if dst == self.node_id:
                continue
            candidate = self._bound(parsed[dst] + link_cost)
            current = self._table.get(dst)

            if current is None:
                if not candidate.is_finite:
                    continue
                updated |= self._install(DistanceTableEntry(dst, candidate, sender, now))
            elif candidate < current.distance:
                updated |= self._install(DistanceTableEntry(dst, candidate, sender, now))
            elif current.next_hop == sender and candidate != current.distance:
                if candidate.is_finite:
                    updated |= self._install(DistanceTableEntry(dst, candidate, sender, now))
                else:
                    updated |= self._install(DistanceTableEntry.unreachable(dst, now))
        return updated

    def get_distance_vector(self) -> Dict[RouterId, Distance]:
        return {dst: entry.distance for dst, entry in sorted(self._table.items())}

    def send_distance_vector(self, target_neighbor: RouterId) -> Dict[RouterId, Distance]:
        target_neighbor = str(target_neighbor)
        if target_neighbor not in self._neighbors:
            raise KeyError(f"Router {self.node_id} has no neighbor {target_neighbor}")

        vector: Dict[RouterId, Distance] = {}
        for dst, entry in sorted(self._table.items()):
            if self.split_horizon and dst != self.node_id and entry.next_hop == target_neighbor:
                if not self.poison_reverse:
                    continue
                vector[dst] = Distance.UNREACHABLE
            else:
                vector[dst] = entry.distance
        self._emit(DistanceVectorUpdate(src=self.node_id, dst=target_neighbor, vector=vector))
        self._count("updates_sent")
        return vector

    def advertise(self, exclude: Optional[RouterId] = None) -> int:
        sent = 0
        for neighbor in sorted(self._neighbors):
            if neighbor == exclude:
                continue
            self.send_distance_vector(neighbor)
            sent += 1
        return sent

    def _bound(self, candidate: Distance) -> Distance:
        if self.max_distance is not None and candidate.is_finite and candidate.value > self.max_distance:
            return Distance.UNREACHABLE
        return candidate

    def _install(self, entry: DistanceTableEntry) -> bool:
        current = self._table.get(entry.destination)
        if current is not None and (current.distance, current.next_hop) == (entry.distance, entry.next_hop):
            return False
        self._table[entry.destination] = entry
        self._count("route_changes")
        return True
