from __future__ import annotations

import pytest

from routecalc.core.types import LinkStateFlood, LinkStatus
from routecalc.model.routing import MAX_SEQUENCE_NUMBER, Link, LinkStatePacket, RoutingTableEntry
from routecalc.protocols.link_state import LinkStateRouter


def _lsp(origin: str, seq: int, links: dict[str, int]) -> LinkStatePacket:
    return LinkStatePacket.from_adjacency(origin, seq, {n: (c, LinkStatus.UP) for n, c in links.items()})


def _router(neighbors: dict[str, int]) -> LinkStateRouter:
    router = LinkStateRouter("A")
    for nbr, cost in neighbors.items():
        router.add_neighbor(nbr, cost)
    router.consume_outbound()
    return router


def test_zero_neighbors_routes_only_to_itself() -> None:
    router = LinkStateRouter("A")
    router.generate_lsp()
    assert router.routing_table == {"A": RoutingTableEntry("A", "A", 0)}
    assert router.consume_outbound() == []


def test_add_neighbor_generates_and_floods_lsp() -> None:
    router = LinkStateRouter("A")
    router.add_neighbor("B", 2)
    router.add_neighbor("C", 5)
    assert router.sequence_number == 2

    outbound = router.consume_outbound()
    assert [(m.dst, m.lsp.sequence_number) for m in outbound] == [("B", 1), ("B", 2), ("C", 2)]
    assert all(isinstance(m, LinkStateFlood) for m in outbound)
    assert router.stats["lsp_sent"] == 3

    own = router.link_state_database["A"]
    assert own.to_adjacency() == {"B": (2, LinkStatus.UP), "C": (5, LinkStatus.UP)}


def test_unchanged_neighbor_does_not_regenerate() -> None:
    router = _router({"B": 2})
    router.add_neighbor("B", 2)
    assert router.sequence_number == 1
    router.add_neighbor("B", 3)
    assert router.sequence_number == 2


@pytest.mark.parametrize("cost", [0, -4, 2.5, False])
def test_add_neighbor_rejects_invalid_cost(cost) -> None:
    router = LinkStateRouter("A")
    with pytest.raises(ValueError):
        router.add_neighbor("B", cost)
    assert router.sequence_number == 0


def test_newest_lsp_wins() -> None:
    router = _router({"B": 1})
    assert router.receive_lsp(_lsp("C", 2, {"B": 1}), "B") is True
    assert router.receive_lsp(_lsp("C", 2, {"B": 1}), "B") is False
    assert router.receive_lsp(_lsp("C", 1, {"B": 7}), "B") is False
    assert router.database_digest() == {"A": 1, "C": 2}
    assert router.stats["lsp_received"] == 3
    assert router.stats["lsp_dropped"] == 2


def test_duplicate_lsp_leaves_state_unchanged() -> None:
    router = _router({"B": 1})
    router.receive_lsp(_lsp("B", 1, {"A": 1, "C": 1}), "B")
    router.consume_outbound()
    tables = router.routing_table
    database = router.link_state_database
    spf_runs = router.stats["spf_calculations"]

    assert router.receive_lsp(_lsp("B", 1, {"A": 1, "C": 1}), "B") is False
    assert router.routing_table == tables
    assert router.link_state_database == database
    assert router.stats["spf_calculations"] == spf_runs
    assert router.consume_outbound() == []


def test_accepted_lsp_is_flooded_except_to_sender() -> None:
    router = _router({"B": 1, "D": 1, "E": 1})
    router.receive_lsp(_lsp("C", 1, {"B": 1}), "B")
    outbound = router.consume_outbound()
    assert [m.dst for m in outbound] == ["D", "E"]
    assert all(m.lsp.origin_router == "C" and m.src == "A" for m in outbound)


def test_lsp_from_non_neighbor_is_dropped() -> None:
    router = _router({"B": 1})
    assert router.receive_lsp(_lsp("C", 1, {"B": 1}), "X") is False
    assert "C" not in router.database_digest()


def test_equal_cost_paths_pick_lowest_first_hop() -> None:
    router = _router({"C": 1, "B": 1})
    router.receive_lsp(_lsp("C", 1, {"A": 1, "D": 1}), "C")
    router.receive_lsp(_lsp("B", 1, {"A": 1, "D": 1}), "B")
    assert router.routing_table["D"] == RoutingTableEntry("D", "B", 2)


def test_unreachable_destinations_have_no_entry() -> None:
    router = _router({"B": 1})
    router.receive_lsp(_lsp("X", 1, {"Y": 1}), "B")
    assert set(router.routing_table) == {"A", "B"}


def test_route_uses_links_from_whole_database() -> None:
    router = _router({"B": 2, "C": 5})
    router.receive_lsp(_lsp("B", 1, {"A": 2, "C": 1}), "B")
    router.receive_lsp(_lsp("C", 1, {"A": 5, "B": 1}), "C")
    assert router.routing_table["C"] == RoutingTableEntry("C", "B", 3)


def test_down_link_is_advertised_but_not_used() -> None:
    router = _router({"B": 1, "C": 4})
    router.receive_lsp(_lsp("B", 1, {"A": 1, "C": 1}), "B")
    router.receive_lsp(_lsp("C", 1, {"A": 4, "B": 1}), "C")
    router.consume_outbound()

    router.set_link_status("B", LinkStatus.DOWN)
    own = router.link_state_database["A"]
    assert Link("A", "B", 1, LinkStatus.DOWN) in own.links
    assert router.routing_table["B"] == RoutingTableEntry("B", "C", 5)
    assert [m.dst for m in router.consume_outbound()] == ["C"]
    assert router.neighbors() == {"C": 4}


def test_set_link_status_on_unknown_neighbor_raises() -> None:
    with pytest.raises(KeyError):
        _router({"B": 1}).set_link_status("Z", "down")


def test_remove_neighbor_regenerates_lsp() -> None:
    router = _router({"B": 1, "C": 1})
    router.remove_neighbor("B")
    assert router.sequence_number == 3
    assert router.link_state_database["A"].to_adjacency() == {"C": (1, LinkStatus.UP)}
    assert "B" not in router.routing_table


def test_newer_self_originated_lsp_forces_reorigination() -> None:
    router = _router({"B": 1})
    assert router.receive_lsp(_lsp("A", 9, {"Z": 1}), "B") is True
    assert router.sequence_number == 10
    own = router.link_state_database["A"]
    assert own.sequence_number == 10
    assert own.to_adjacency() == {"B": (1, LinkStatus.UP)}


def test_sequence_space_exhaustion_raises() -> None:
    router = LinkStateRouter("A")
    router.sequence_number = MAX_SEQUENCE_NUMBER
    with pytest.raises(OverflowError):
        router.generate_lsp()


def test_lsp_adjacency_round_trip() -> None:
    adjacency = {"B": (2, LinkStatus.UP), "C": (7, LinkStatus.DOWN), "D": (1, LinkStatus.UP)}
    lsp = LinkStatePacket.from_adjacency("A", 4, adjacency)
    assert lsp.to_adjacency() == adjacency
    assert [link.destination for link in lsp.links] == ["B", "C", "D"]


def test_database_hands_out_copies() -> None:
    router = _router({"B": 1})
    first = router.link_state_database["A"]
    second = router.link_state_database["A"]
    assert first == second
    assert first.links[0] is not second.links[0]


def test_installed_lsp_age_increments() -> None:
    router = _router({"B": 1})
    router.receive_lsp(_lsp("C", 1, {"B": 1}), "B")
    assert router.link_state_database["C"].age == 1


def test_lsp_rejects_foreign_links() -> None:
    with pytest.raises(ValueError):
        LinkStatePacket("A", 1, 0, (Link("B", "C", 1),))
    with pytest.raises(ValueError):
        LinkStatePacket("A", 0)
