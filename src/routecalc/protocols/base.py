from __future__ import annotations

import heapq
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from routecalc.core.types import Cost, DistanceVectorUpdate, LinkStateFlood, RouterId
from routecalc.model.routing import RoutingTableEntry, validate_cost

Message = Union[DistanceVectorUpdate, LinkStateFlood]
Graph = Mapping[RouterId, Mapping[RouterId, Cost]]


class RoutingProtocol:
    """Base class for the per-node routing engines.

    A protocol instance owns its tables exclusively. It never touches another
    router: everything it wants to tell a peer goes into its outbox, which
    the coordinator drains and delivers through ``receive_*`` entry points.
    """

    name = "base"
    STAT_KEYS: Tuple[str, ...] = ("route_changes",)

    def __init__(self, node_id: RouterId, config: dict | None = None) -> None:
        self.node_id = str(node_id)
        self.config = dict(config or {})
        self._stats: Dict[str, int] = {key: 0 for key in self.STAT_KEYS}
        self._outbox: List[Message] = []

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    @property
    def routing_table(self) -> Dict[RouterId, RoutingTableEntry]:
        raise NotImplementedError

    def neighbors(self) -> Dict[RouterId, Cost]:
        raise NotImplementedError

    def route_costs(self) -> Dict[RouterId, Cost]:
        return {dst: entry.cost for dst, entry in self.routing_table.items()}

    def consume_outbound(self) -> List[Message]:
        out = self._outbox
        self._outbox = []
        return out

    def _count(self, key: str, amount: int = 1) -> None:
        self._stats[key] = self._stats.get(key, 0) + amount

    def _emit(self, msg: Message) -> None:
        self._outbox.append(msg)

    def _check_neighbor(self, neighbor_id: RouterId, cost: Any) -> Tuple[RouterId, Cost]:
        neighbor_id = str(neighbor_id)
        if neighbor_id == self.node_id:
            raise ValueError(f"Router {self.node_id} cannot be its own neighbor")
        return neighbor_id, validate_cost(cost)

    def _self_route(self) -> RoutingTableEntry:
        return RoutingTableEntry(self.node_id, self.node_id, 0)

    @staticmethod
    def dijkstra_with_predecessors(
        graph: Graph,
        start: RouterId,
    ) -> Tuple[Dict[RouterId, Cost], Dict[RouterId, Optional[RouterId]]]:
        """Single-source shortest paths with a deterministic tie-break.

        Labels are ``(distance, first_hop)`` compared lexicographically, so of
        two equal-cost paths the one leaving ``start`` through the lowest
        neighbor id wins. Neighbors are relaxed in sorted order.
        """
        distances: Dict[RouterId, Cost] = {start: 0}
        first_hops: Dict[RouterId, str] = {start: ""}
        predecessors: Dict[RouterId, Optional[RouterId]] = {start: None}
        done: set[RouterId] = set()
        pq: List[Tuple[Cost, str, RouterId]] = [(0, "", start)]

        while pq:
            dist_u, hop_u, u = heapq.heappop(pq)
            if u in done:
                continue
            done.add(u)
            for v in sorted(graph.get(u, {})):
                weight = graph[u][v]
                if weight <= 0 or v in done:
                    continue
                nd = dist_u + weight
                hop_v = v if u == start else hop_u
                label = (nd, hop_v)
                current = (distances[v], first_hops[v]) if v in distances else None
                if current is None or label < current:
                    distances[v] = nd
                    first_hops[v] = hop_v
                    predecessors[v] = u
                    heapq.heappush(pq, (nd, hop_v, v))

        return distances, predecessors

    @staticmethod
    def trace_first_hop(
        start: RouterId,
        dst: RouterId,
        predecessors: Mapping[RouterId, Optional[RouterId]],
    ) -> Optional[RouterId]:
        if dst == start:
            return start
        node = dst
        seen: set[RouterId] = set()
        while node not in seen:
            seen.add(node)
            parent = predecessors.get(node)
            if parent is None:
                return None
            if parent == start:
                return node
            node = parent
        return None
