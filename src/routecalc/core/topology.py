from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from routecalc.core.types import Cost, LinkStatus, RouterId
from routecalc.model.routing import Link, validate_cost


class Topology:
    """Bidirectional weighted links between named routers.

    Each undirected link is held as two directed ``Link`` entries that always
    agree on cost and status.
    """

    def __init__(self) -> None:
        self._adj: Dict[RouterId, Dict[RouterId, Link]] = {}

    def add_node(self, node: RouterId) -> None:
        self._adj.setdefault(str(node), {})

    def nodes(self) -> List[RouterId]:
        return sorted(self._adj.keys())

    def neighbors(self, node: RouterId) -> Dict[RouterId, Cost]:
        return {v: link.cost for v, link in self._adj.get(node, {}).items() if link.is_up}

    def has_link(self, u: RouterId, v: RouterId) -> bool:
        return v in self._adj.get(u, {})

    def link(self, u: RouterId, v: RouterId) -> Optional[Link]:
        return self._adj.get(u, {}).get(v)

    def add_link(self, u: RouterId, v: RouterId, cost: Cost, status: LinkStatus = LinkStatus.UP) -> None:
        u, v = str(u), str(v)
        if u == v:
            raise ValueError(f"Self link not allowed: {u}")
        cost = validate_cost(cost)
        status = LinkStatus(status)
        self.add_node(u)
        self.add_node(v)
        self._adj[u][v] = Link(u, v, cost, status)
        self._adj[v][u] = Link(v, u, cost, status)

    def remove_link(self, u: RouterId, v: RouterId) -> None:
        self._adj.get(u, {}).pop(v, None)
        self._adj.get(v, {}).pop(u, None)

    def update_cost(self, u: RouterId, v: RouterId, cost: Cost) -> None:
        current = self._require(u, v)
        self.add_link(u, v, cost, current.status)

    def set_status(self, u: RouterId, v: RouterId, status: LinkStatus) -> None:
        current = self._require(u, v)
        self.add_link(u, v, current.cost, LinkStatus(status))

    def links(self) -> List[Link]:
        out: List[Link] = []
        for u in self.nodes():
            for v, link in self._adj[u].items():
                if u < v:
                    out.append(link)
        return sorted(out, key=lambda l: (l.source, l.destination))

    def edge_triples(self) -> List[Tuple[RouterId, RouterId, Cost]]:
        return [(l.source, l.destination, l.cost) for l in self.links() if l.is_up]

    def snapshot(self) -> Dict[RouterId, Dict[RouterId, Cost]]:
        return {n: self.neighbors(n) for n in self.nodes()}

    def components(self) -> List[List[RouterId]]:
        """Connected components over up links, each sorted, in order of first node."""
        seen: set[RouterId] = set()
        out: List[List[RouterId]] = []
        for start in self.nodes():
            if start in seen:
                continue
            seen.add(start)
            stack = [start]
            component: List[RouterId] = []
            while stack:
                node = stack.pop()
                component.append(node)
                for nbr in self.neighbors(node):
                    if nbr not in seen:
                        seen.add(nbr)
                        stack.append(nbr)
            out.append(sorted(component))
        return out

    def copy(self) -> "Topology":
        other = Topology()
        for n in self.nodes():
            other.add_node(n)
        for l in self.links():
            other.add_link(l.source, l.destination, l.cost, l.status)
        return other

    def _require(self, u: RouterId, v: RouterId) -> Link:
        current = self.link(u, v)
        if current is None:
            raise KeyError(f"No link between {u} and {v}")
        return current

    @classmethod
    def from_edges(cls, edges: Iterable[Sequence[Any]]) -> "Topology":
        t = cls()
        for u, v, cost in edges:
            t.add_link(str(u), str(v), cost)
        return t

    @staticmethod
    def _name(i: int) -> RouterId:
        return f"r{i}"

    @classmethod
    def line(cls, n_nodes: int, cost: Cost = 1) -> "Topology":
        t = cls()
        for i in range(max(0, n_nodes)):
            t.add_node(cls._name(i))
        for i in range(n_nodes - 1):
            t.add_link(cls._name(i), cls._name(i + 1), cost)
        return t

    @classmethod
    def ring(cls, n_nodes: int, cost: Cost = 1) -> "Topology":
        t = cls.line(n_nodes, cost)
        if n_nodes > 2:
            t.add_link(cls._name(n_nodes - 1), cls._name(0), cost)
        return t

    @classmethod
    def star(cls, n_nodes: int, cost: Cost = 1, center: int = 0) -> "Topology":
        t = cls()
        if n_nodes <= 0:
            return t
        center = max(0, min(center, n_nodes - 1))
        for i in range(n_nodes):
            t.add_node(cls._name(i))
        for i in range(n_nodes):
            if i == center:
                continue
            t.add_link(cls._name(center), cls._name(i), cost)
        return t

    @classmethod
    def fullmesh(cls, n_nodes: int, cost: Cost = 1) -> "Topology":
        t = cls()
        for i in range(max(0, n_nodes)):
            t.add_node(cls._name(i))
        for u in range(n_nodes):
            for v in range(u + 1, n_nodes):
                t.add_link(cls._name(u), cls._name(v), cost)
        return t

    @classmethod
    def grid(cls, rows: int, cols: int, cost: Cost = 1) -> "Topology":
        t = cls()

        def idx(r: int, c: int) -> RouterId:
            return cls._name(r * cols + c)

        for r in range(rows):
            for c in range(cols):
                u = idx(r, c)
                t.add_node(u)
                if c + 1 < cols:
                    t.add_link(u, idx(r, c + 1), cost)
                if r + 1 < rows:
                    t.add_link(u, idx(r + 1, c), cost)
        return t

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Topology":
        tp = cfg.get("type", "edges")
        cost = int(cfg.get("default_cost", 1))
        if tp == "edges":
            t = cls.from_edges(cfg.get("edges", []))
            for node in cfg.get("nodes", []):
                t.add_node(str(node))
            return t
        if tp == "line":
            return cls.line(int(cfg.get("n_nodes", 5)), cost)
        if tp == "ring":
            return cls.ring(int(cfg.get("n_nodes", 6)), cost)
        if tp == "star":
            return cls.star(int(cfg.get("n_nodes", 5)), cost, int(cfg.get("center", 0)))
        if tp == "fullmesh":
            return cls.fullmesh(int(cfg.get("n_nodes", 4)), cost)
        if tp == "grid":
            return cls.grid(int(cfg.get("rows", 3)), int(cfg.get("cols", 3)), cost)
        raise ValueError(f"Unsupported topology type: {tp}")
