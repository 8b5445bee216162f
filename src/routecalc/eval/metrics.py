from __future__ import annotations

from typing import Any, Dict, List


def compute_metrics(run: Dict[str, Any]) -> Dict[str, Any]:
    totals = run.get("totals", {})
    dv = totals.get("distance_vector", {})
    ls = totals.get("link_state", {})
    phases = run.get("phases", [])
    return {
        "run_id": run.get("run_id"),
        "name": run.get("name"),
        "seed": run.get("seed"),
        "converged": run.get("converged"),
        "phases": len(phases),
        "dv_rounds": _sum_rounds(phases, "distance_vector"),
        "ls_rounds": _sum_rounds(phases, "link_state"),
        "dv_updates_sent": dv.get("updates_sent", 0),
        "dv_route_changes": dv.get("route_changes", 0),
        "ls_lsp_sent": ls.get("lsp_sent", 0),
        "ls_spf_calculations": ls.get("spf_calculations", 0),
        "delivered_messages": run.get("delivered_messages", 0),
        "tables_agree": run.get("tables_agree"),
        "hash_changes": _count_hash_changes(phases),
    }


def _sum_rounds(phases: List[Dict[str, Any]], protocol: str) -> int:
    return sum(int(p.get("reports", {}).get(protocol, {}).get("rounds", 0)) for p in phases)


def _count_hash_changes(phases: List[Dict[str, Any]]) -> int:
    changes = 0
    prev: Dict[str, str] = {}
    for phase in phases:
        hashes = phase.get("route_hashes", {})
        for protocol, h in hashes.items():
            if protocol in prev and prev[protocol] != h:
                changes += 1
            prev[protocol] = h
    return changes
