from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from routecalc.core.logging import JsonlLogger
from routecalc.core.network_model import Message, NetworkModel
from routecalc.core.topology import Topology
from routecalc.core.types import (
    ConvergenceReport,
    Cost,
    DistanceVectorUpdate,
    ExternalEvent,
    LinkStateFlood,
    LinkStatus,
    RouterId,
)
from routecalc.model.routing import RoutingTableEntry
from routecalc.protocols.base import RoutingProtocol
from routecalc.protocols.distance_vector import DistanceVectorRouter
from routecalc.protocols.link_state import LinkStateRouter
from routecalc.protocols.registry import load_protocol

log = logging.getLogger("routecalc.coordinator")

DV = DistanceVectorRouter.name
LS = LinkStateRouter.name


class SimulationCoordinator:
    """Drives protocol exchange between router instances.

    The coordinator owns the topology and the network model. Routers are only
    reached through their public ``add_neighbor``/``remove_neighbor``/
    ``receive_*`` methods and their outbox.
    """

    def __init__(
        self,
        topology: Topology,
        protocol_params: Optional[Dict[str, dict]] = None,
        network: Optional[NetworkModel] = None,
        event_log: Optional[JsonlLogger] = None,
        max_rounds: int = 100,
        protocols: Sequence[str] = (DV, LS),
    ) -> None:
        self.topology = topology
        self.protocol_params = dict(protocol_params or {})
        self.network = network or NetworkModel()
        self.event_log = event_log or JsonlLogger(path=None)
        self.max_rounds = max(1, int(max_rounds))
        self.protocols = tuple(protocols)
        self._routers: Dict[str, Dict[RouterId, RoutingProtocol]] = {}

        for name in self.protocols:
            protocol_cls = load_protocol(name)
            config = self.protocol_params.get(name, {})
            self._routers[name] = {node: protocol_cls(node, config=config) for node in topology.nodes()}
        for link in topology.links():
            if link.is_up:
                self._connect(link.source, link.destination, link.cost)

    @classmethod
    def from_edges(cls, edges: Iterable[Sequence[Any]], **kwargs: Any) -> "SimulationCoordinator":
        return cls(Topology.from_edges(edges), **kwargs)

    def routers(self, protocol: str) -> List[RouterId]:
        return sorted(self._protocol_routers(protocol))

    def router(self, protocol: str, node_id: RouterId) -> RoutingProtocol:
        return self._protocol_routers(protocol)[str(node_id)]

    def run_distance_vector(self, max_rounds: Optional[int] = None) -> ConvergenceReport:
        bound = self.max_rounds if max_rounds is None else max(1, int(max_rounds))
        routers = self._protocol_routers(DV)
        delivered_before = self.network.delivered_messages
        rounds = 0
        converged = False

        while rounds < bound:
            rounds += 1
            for node in sorted(routers):
                routers[node].advertise()
            if not self._deliver_all(DV):
                converged = True
                break

        report = ConvergenceReport(
            protocol=DV,
            converged=converged,
            rounds=rounds,
            messages_delivered=self.network.delivered_messages - delivered_before,
        )
        self._report(report)
        return report

    def run_link_state(self) -> ConvergenceReport:
        routers = self._protocol_routers(LS)
        delivered_before = self.network.delivered_messages
        tick_before = self.network.now
        for node in sorted(routers):
            routers[node].generate_lsp()
        self._deliver_all(LS)
        report = ConvergenceReport(
            protocol=LS,
            converged=self.link_state_databases_consistent(),
            rounds=self.network.now - tick_before,
            messages_delivered=self.network.delivered_messages - delivered_before,
        )
        self._report(report)
        return report

    def converge(self) -> Dict[str, ConvergenceReport]:
        reports: Dict[str, ConvergenceReport] = {}
        if DV in self._routers:
            reports[DV] = self.run_distance_vector()
        if LS in self._routers:
            reports[LS] = self.run_link_state()
        return reports

    def apply_event(self, event: ExternalEvent) -> None:
        action = event.action
        p = event.params
        u, v = str(p["u"]), str(p["v"])
        if action == "link_down":
            self.link_down(u, v)
        elif action == "link_up":
            self.link_up(u, v)
        elif action == "remove_link":
            self.remove_link(u, v)
        elif action == "add_link":
            self.add_link(u, v, p.get("cost", 1))
        elif action == "update_cost":
            self.update_cost(u, v, p["cost"])
        else:
            raise ValueError(f"Unsupported event action: {action}")
        self.event_log.log("event_applied", action=action, params=dict(p))

    def link_down(self, u: RouterId, v: RouterId) -> None:
        self.topology.set_status(u, v, LinkStatus.DOWN)
        for a, b in ((u, v), (v, u)):
            if DV in self._routers:
                self._routers[DV][a].remove_neighbor(b)
            if LS in self._routers:
                self._routers[LS][a].set_link_status(b, LinkStatus.DOWN)

    def link_up(self, u: RouterId, v: RouterId) -> None:
        self.topology.set_status(u, v, LinkStatus.UP)
        self._connect(u, v, self.topology.neighbors(u)[v])

    def remove_link(self, u: RouterId, v: RouterId) -> None:
        self.topology.remove_link(u, v)
        for name in self.protocols:
            routers = self._routers[name]
            if u in routers:
                routers[u].remove_neighbor(v)
            if v in routers:
                routers[v].remove_neighbor(u)

    def add_link(self, u: RouterId, v: RouterId, cost: Cost) -> None:
        self.topology.add_link(u, v, cost)
        for name in self.protocols:
            routers = self._routers[name]
            protocol_cls = load_protocol(name)
            config = self.protocol_params.get(name, {})
            for node in (u, v):
                if node not in routers:
                    routers[node] = protocol_cls(node, config=config)
        self._connect(u, v, cost)

    def update_cost(self, u: RouterId, v: RouterId, cost: Cost) -> None:
        self.topology.update_cost(u, v, cost)
        link = self.topology.link(u, v)
        if link is not None and link.is_up:
            self._connect(u, v, link.cost)

    def routing_tables(self, protocol: str) -> Dict[RouterId, Dict[RouterId, RoutingTableEntry]]:
        routers = self._protocol_routers(protocol)
        return {node: routers[node].routing_table for node in sorted(routers)}

    def distance_vector_tables(self) -> Dict[RouterId, Dict[RouterId, RoutingTableEntry]]:
        return self.routing_tables(DV)

    def link_state_tables(self) -> Dict[RouterId, Dict[RouterId, RoutingTableEntry]]:
        return self.routing_tables(LS)

    def route_costs(self, protocol: str) -> Dict[RouterId, Dict[RouterId, Cost]]:
        routers = self._protocol_routers(protocol)
        return {node: routers[node].route_costs() for node in sorted(routers)}

    def statistics(self) -> Dict[str, Dict[RouterId, Dict[str, int]]]:
        return {
            name: {node: routers[node].stats for node in sorted(routers)}
            for name, routers in self._routers.items()
        }

    def totals(self) -> Dict[str, Dict[str, int]]:
        out: Dict[str, Dict[str, int]] = {}
        for name, per_router in self.statistics().items():
            summed: Dict[str, int] = {}
            for stats in per_router.values():
                for key, value in stats.items():
                    summed[key] = summed.get(key, 0) + int(value)
            out[name] = summed
        return out

    def link_state_databases_consistent(self) -> bool:
        """True when every router holds the same LSDB as the rest of its partition."""
        routers = self._protocol_routers(LS)
        for component in self.topology.components():
            digests = [routers[node].database_digest() for node in component if node in routers]
            if any(d != digests[0] for d in digests[1:]):
                return False
        return True

    def _protocol_routers(self, protocol: str) -> Dict[RouterId, Any]:
        if protocol not in self._routers:
            raise KeyError(f"Protocol {protocol} is not part of this simulation")
        return self._routers[protocol]

    def _connect(self, u: RouterId, v: RouterId, cost: Cost) -> None:
        for name in self.protocols:
            routers = self._routers[name]
            routers[u].add_neighbor(v, cost)
            routers[v].add_neighbor(u, cost)

    def _collect(self, protocol: str) -> None:
        routers = self._routers[protocol]
        for node in sorted(routers):
            self.network.send_all(routers[node].consume_outbound())

    def _deliver_all(self, protocol: str) -> bool:
        self._collect(protocol)
        routers = self._routers[protocol]
        changed = False
        while self.network.pending():
            msg = self.network.deliver_next()
            if msg is None:
                break
            target = routers.get(msg.dst)
            if target is None:
                continue
            changed |= self._dispatch(target, msg)
            self.network.send_all(target.consume_outbound())
        return changed

    @staticmethod
    def _dispatch(target: Any, msg: Message) -> bool:
        if isinstance(msg, DistanceVectorUpdate):
            return bool(target.receive_distance_vector(msg.src, msg.vector))
        if isinstance(msg, LinkStateFlood):
            return bool(target.receive_lsp(msg.lsp, msg.src))
        raise TypeError(f"Unknown message type: {type(msg).__name__}")

    def _report(self, report: ConvergenceReport) -> None:
        if report.converged:
            log.info(
                "%s converged after %d rounds (%d messages)",
                report.protocol,
                report.rounds,
                report.messages_delivered,
            )
        else:
            log.warning(
                "%s did not converge within %d rounds (%d messages)",
                report.protocol,
                report.rounds,
                report.messages_delivered,
            )
        self.event_log.log("convergence", **report.to_dict())
