from __future__ import annotations

from typing import Any, Dict

from routecalc.protocols.registry import available_protocols

_EVENT_ACTIONS = {"link_down", "link_up", "remove_link", "add_link", "update_cost"}


def validate_config(cfg: Dict[str, Any]) -> list[str]:
    errors: list[str] = []

    if "topology" not in cfg:
        errors.append("Missing 'topology' config")

    topo = cfg.get("topology", {})
    if not isinstance(topo, dict):
        errors.append("'topology' must be a dict")
    elif topo.get("type", "edges") == "edges":
        edges = topo.get("edges", [])
        if not isinstance(edges, list) or not edges:
            errors.append("topology.edges must be a non-empty list")
        else:
            for idx, edge in enumerate(edges):
                if not isinstance(edge, (list, tuple)) or len(edge) != 3:
                    errors.append(f"topology.edges[{idx}] must be [source, destination, cost]")
                    continue
                cost = edge[2]
                if isinstance(cost, bool) or not isinstance(cost, int) or cost <= 0:
                    errors.append(f"topology.edges[{idx}] cost must be a positive integer")

    protocols = cfg.get("protocols", available_protocols())
    if not isinstance(protocols, list) or not protocols:
        errors.append("'protocols' must be a non-empty list")
    else:
        for name in protocols:
            if name not in available_protocols():
                errors.append(f"Unknown protocol: {name}")

    engine = cfg.get("engine", {})
    if isinstance(engine, dict) and int(engine.get("max_rounds", 1)) <= 0:
        errors.append("engine.max_rounds must be > 0")

    for idx, row in enumerate(cfg.get("failures", []) or []):
        if not isinstance(row, dict):
            errors.append(f"failures[{idx}] must be a dict")
            continue
        if row.get("action") not in _EVENT_ACTIONS:
            errors.append(f"failures[{idx}].action must be one of {sorted(_EVENT_ACTIONS)}")
        if "u" not in row or "v" not in row:
            errors.append(f"failures[{idx}] requires 'u' and 'v'")

    return errors
