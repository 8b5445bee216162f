from __future__ import annotations

import hashlib
import json
from typing import Dict, Mapping

from routecalc.core.types import RouterId
from routecalc.model.routing import RoutingTableEntry

RouteTables = Mapping[RouterId, Mapping[RouterId, RoutingTableEntry]]


def normalize_routes(route_tables: RouteTables) -> Dict[str, Dict[str, list]]:
    normalized: Dict[str, Dict[str, list]] = {}
    for node, routes in sorted(route_tables.items()):
        normalized[str(node)] = {}
        for dst, entry in sorted(routes.items()):
            normalized[str(node)][str(dst)] = [str(entry.next_hop), int(entry.cost)]
    return normalized


def hash_routes(route_tables: RouteTables) -> str:
    payload = json.dumps(normalize_routes(route_tables), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
