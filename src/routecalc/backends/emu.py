from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

from routecalc.backends.base import Backend
from routecalc.core.convergence import hash_routes
from routecalc.core.coordinator import DV, LS, SimulationCoordinator
from routecalc.core.logging import JsonlLogger
from routecalc.core.network_model import NetworkModel
from routecalc.core.topology import Topology
from routecalc.core.types import ConvergenceReport, ExternalEvent
from routecalc.utils.io import dump_json, ensure_dir, now_tag

log = logging.getLogger("routecalc.backend")


class EmuBackend(Backend):
    """Runs one configured experiment in-process and writes its artefacts."""

    def run(self, config: Dict[str, Any]) -> Dict[str, Any]:
        seed = int(config.get("seed", 0))
        name = str(config.get("name", "run"))
        protocols = [str(p) for p in config.get("protocols", [DV, LS])]
        protocol_params = dict(config.get("protocol_params", {}))

        topology = Topology.from_config(config.get("topology", {}))
        engine_cfg = config.get("engine", {})
        network_cfg = config.get("network", engine_cfg.get("network", {}))
        network = NetworkModel(
            base_delay=int(network_cfg.get("base_delay", 1)),
            jitter=int(network_cfg.get("jitter", 0)),
            seed=seed,
        )

        output_dir = Path(config.get("output_dir", "results/runs"))
        run_id = f"{name}_{now_tag()}"
        run_dir = ensure_dir(output_dir / run_id)
        event_log = JsonlLogger(run_dir / "events.jsonl")

        coordinator = SimulationCoordinator(
            topology=topology,
            protocol_params=protocol_params,
            network=network,
            event_log=event_log,
            max_rounds=int(engine_cfg.get("max_rounds", 100)),
            protocols=protocols,
        )
        log.info("run %s: %d routers, protocols=%s", run_id, len(topology.nodes()), protocols)

        phases: List[Dict[str, Any]] = []
        try:
            event_log.log("phase_start", phase=0, event=None)
            phases.append(self._phase(coordinator, 0, None, coordinator.converge()))
            for idx, event in enumerate(self._parse_events(config.get("failures", [])), start=1):
                coordinator.apply_event(event)
                event_log.log("phase_start", phase=idx, event=event.action)
                phases.append(self._phase(coordinator, idx, event, coordinator.converge()))
        finally:
            event_log.close()

        converged = all(report["converged"] for phase in phases for report in phase["reports"].values())
        result_payload = {
            "run_id": run_id,
            "name": name,
            "seed": seed,
            "protocols": protocols,
            "converged": converged,
            "phases": phases,
            "route_tables": {
                protocol: {
                    node: {dst: entry.to_dict() for dst, entry in table.items()}
                    for node, table in coordinator.routing_tables(protocol).items()
                }
                for protocol in protocols
            },
            "tables_agree": self._tables_agree(coordinator, protocols),
            "statistics": coordinator.statistics(),
            "totals": coordinator.totals(),
            "sent_messages": network.sent_messages,
            "delivered_messages": network.delivered_messages,
            "topology_edges": [link.to_dict() for link in topology.links()],
        }
        dump_json(run_dir / "result.json", result_payload)
        dump_json(run_dir / "config.effective.json", config)
        if not converged:
            log.warning("run %s finished without converging in every phase", run_id)
        return result_payload

    @staticmethod
    def _phase(
        coordinator: SimulationCoordinator,
        idx: int,
        event: ExternalEvent | None,
        reports: Dict[str, ConvergenceReport],
    ) -> Dict[str, Any]:
        return {
            "phase": idx,
            "event": None if event is None else {"action": event.action, **event.params},
            "reports": {protocol: report.to_dict() for protocol, report in reports.items()},
            "route_hashes": {
                protocol: hash_routes(coordinator.routing_tables(protocol)) for protocol in reports
            },
        }

    @staticmethod
    def _tables_agree(coordinator: SimulationCoordinator, protocols: List[str]) -> bool | None:
        if DV not in protocols or LS not in protocols:
            return None
        return coordinator.route_costs(DV) == coordinator.route_costs(LS)

    @staticmethod
    def _parse_events(events_cfg: List[Dict[str, Any]]) -> List[ExternalEvent]:
        events = []
        for row in events_cfg:
            action = str(row["action"])
            params = {k: v for k, v in row.items() if k != "action"}
            events.append(ExternalEvent(action=action, params=params))
        return events
