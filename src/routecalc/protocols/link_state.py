from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from routecalc.core.types import Cost, LinkStateFlood, LinkStatus, RouterId
from routecalc.model.routing import MAX_SEQUENCE_NUMBER, LinkStatePacket, RoutingTableEntry
from routecalc.protocols.base import RoutingProtocol

log = logging.getLogger("routecalc.ls")


class LinkStateRouter(RoutingProtocol):
    """Link-state routing with newest-wins LSP flooding and local SPF."""

    name = "link_state"
    MSG_LSP = LinkStateFlood.msg_type
    STAT_KEYS = ("lsp_sent", "lsp_received", "lsp_dropped", "spf_calculations", "route_changes")

    def __init__(self, node_id: RouterId, config: dict | None = None) -> None:
        super().__init__(node_id, config)
        self.sequence_number = 0
        self._adjacency: Dict[RouterId, Tuple[Cost, LinkStatus]] = {}
        self._lsdb: Dict[RouterId, LinkStatePacket] = {}
        self._routes: Dict[RouterId, RoutingTableEntry] = {self.node_id: self._self_route()}

    def neighbors(self) -> Dict[RouterId, Cost]:
        return {n: cost for n, (cost, status) in sorted(self._adjacency.items()) if status == LinkStatus.UP}

    @property
    def routing_table(self) -> Dict[RouterId, RoutingTableEntry]:
        return dict(self._routes)

    @property
    def link_state_database(self) -> Dict[RouterId, LinkStatePacket]:
        return {origin: lsp.copy() for origin, lsp in sorted(self._lsdb.items())}

    def database_digest(self) -> Dict[RouterId, int]:
        return {origin: lsp.sequence_number for origin, lsp in sorted(self._lsdb.items())}

    def add_neighbor(self, neighbor_id: RouterId, cost: Any) -> None:
        neighbor_id, cost = self._check_neighbor(neighbor_id, cost)
        entry = (cost, LinkStatus.UP)
        if self._adjacency.get(neighbor_id) == entry:
            return
        self._adjacency[neighbor_id] = entry
        log.debug("router %s: link to %s up with cost %s", self.node_id, neighbor_id, cost)
        self.generate_lsp()

    def remove_neighbor(self, neighbor_id: RouterId) -> None:
        neighbor_id = str(neighbor_id)
        if neighbor_id not in self._adjacency:
            return
        del self._adjacency[neighbor_id]
        log.debug("router %s: link to %s removed", self.node_id, neighbor_id)
        self.generate_lsp()

    def set_link_status(self, neighbor_id: RouterId, status: LinkStatus | str) -> None:
        neighbor_id = str(neighbor_id)
        status = LinkStatus(status)
        if neighbor_id not in self._adjacency:
            raise KeyError(f"Router {self.node_id} has no neighbor {neighbor_id}")
        cost, current = self._adjacency[neighbor_id]
        if current == status:
            return
        self._adjacency[neighbor_id] = (cost, status)
        log.debug("router %s: link to %s is now %s", self.node_id, neighbor_id, status.value)
        self.generate_lsp()

    def generate_lsp(self) -> LinkStatePacket:
        if self.sequence_number >= MAX_SEQUENCE_NUMBER:
            raise OverflowError(f"Router {self.node_id} exhausted its LSP sequence space")
        self.sequence_number += 1
        lsp = LinkStatePacket.from_adjacency(self.node_id, self.sequence_number, self._adjacency)
        self._lsdb[self.node_id] = lsp
        self._flood(lsp)
        self.calculate_shortest_paths()
        return lsp

    def receive_lsp(self, lsp: LinkStatePacket, from_neighbor: RouterId) -> bool:
        from_neighbor = str(from_neighbor)
        self._count("lsp_received")
        if from_neighbor not in self.neighbors():
            self._count("lsp_dropped")
            log.debug("router %s: dropped LSP from non-neighbor %s", self.node_id, from_neighbor)
            return False

        origin = lsp.origin_router
        existing = self._lsdb.get(origin)
        if existing is not None and lsp.sequence_number <= existing.sequence_number:
            self._count("lsp_dropped")
            return False

        if origin == self.node_id:
            # A newer copy of our own LSP survived from an earlier life; outrun it.
            log.debug("router %s: own LSP seq %s seen, re-originating", self.node_id, lsp.sequence_number)
            self.sequence_number = lsp.sequence_number
            self.generate_lsp()
            return True

        installed = lsp.copy(age=lsp.age + 1)
        self._lsdb[origin] = installed
        self._flood(installed, exclude=from_neighbor)
        self.calculate_shortest_paths()
        return True

    def calculate_shortest_paths(self) -> Dict[RouterId, RoutingTableEntry]:
        self._count("spf_calculations")
        graph: Dict[RouterId, Dict[RouterId, Cost]] = {}
        for lsp in self._lsdb.values():
            edges = graph.setdefault(lsp.origin_router, {})
            for link in lsp.up_links():
                edges[link.destination] = link.cost

        distances, predecessors = self.dijkstra_with_predecessors(graph, self.node_id)
        routes: Dict[RouterId, RoutingTableEntry] = {self.node_id: self._self_route()}
        for dst in sorted(distances):
            if dst == self.node_id:
                continue
            next_hop = self.trace_first_hop(self.node_id, dst, predecessors)
            if next_hop is None:
                continue
            routes[dst] = RoutingTableEntry(dst, next_hop, distances[dst])

        if routes != self._routes:
            self._count("route_changes")
            self._routes = routes
        return dict(self._routes)

    def _flood(self, lsp: LinkStatePacket, exclude: Optional[RouterId] = None) -> None:
        for neighbor in self.neighbors():
            if neighbor == exclude:
                continue
            self._emit(LinkStateFlood(src=self.node_id, dst=neighbor, lsp=lsp.copy()))
            self._count("lsp_sent")
