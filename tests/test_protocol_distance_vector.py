from __future__ import annotations

import pytest

from routecalc.core.types import Distance, DistanceVectorUpdate
from routecalc.model.routing import RoutingTableEntry
from routecalc.protocols.distance_vector import DistanceVectorRouter


def _router(neighbors: dict[str, int], **config) -> DistanceVectorRouter:
    router = DistanceVectorRouter("A", config=config, clock=lambda: 0.0)
    for nbr, cost in neighbors.items():
        router.add_neighbor(nbr, cost)
    return router


def test_add_neighbor_seeds_direct_entry() -> None:
    router = _router({"B": 3})
    entry = router.distance_table["B"]
    assert entry.distance == Distance.finite(3)
    assert entry.next_hop == "B"
    assert router.distance_table["A"].distance == Distance.finite(0)
    assert router.distance_table["A"].next_hop == "A"


@pytest.mark.parametrize("cost", [0, -1, 1.5, True, "2", None])
def test_add_neighbor_rejects_invalid_cost(cost) -> None:
    router = DistanceVectorRouter("A")
    with pytest.raises(ValueError):
        router.add_neighbor("B", cost)
    assert router.neighbors() == {}


def test_add_self_as_neighbor_is_rejected() -> None:
    with pytest.raises(ValueError):
        DistanceVectorRouter("A").add_neighbor("A", 1)


def test_zero_neighbors_routes_only_to_itself() -> None:
    router = DistanceVectorRouter("A")
    assert router.routing_table == {"A": RoutingTableEntry("A", "A", 0)}
    assert router.advertise() == 0


def test_better_vector_installs_route_via_sender() -> None:
    router = _router({"B": 1, "C": 4})
    changed = router.receive_distance_vector("B", {"B": 0, "C": 1, "D": 5})
    assert changed is True
    table = router.routing_table
    assert table["C"] == RoutingTableEntry("C", "B", 2)
    assert table["D"] == RoutingTableEntry("D", "B", 6)
    assert router.stats["updates_received"] == 1


def test_worse_vector_from_other_neighbor_is_ignored() -> None:
    router = _router({"B": 1, "C": 4})
    router.receive_distance_vector("B", {"C": 1})
    assert router.receive_distance_vector("C", {"B": 9}) is False
    assert router.routing_table["B"].next_hop == "B"


def test_redelivered_vector_leaves_state_unchanged() -> None:
    router = _router({"B": 1, "C": 4})
    vector = {"B": 0, "C": 1, "D": 2}
    router.receive_distance_vector("B", vector)
    before = router.distance_table
    changes_before = router.stats["route_changes"]

    assert router.receive_distance_vector("B", dict(vector)) is False
    assert router.distance_table == before
    assert router.stats["route_changes"] == changes_before


def test_next_hop_cost_change_is_followed_even_if_worse() -> None:
    router = _router({"B": 1, "C": 10})
    router.receive_distance_vector("B", {"D": 1})
    assert router.routing_table["D"].cost == 2

    assert router.receive_distance_vector("B", {"D": 5}) is True
    assert router.routing_table["D"] == RoutingTableEntry("D", "B", 6)


def test_unreachable_from_next_hop_demotes_entry() -> None:
    router = _router({"B": 1, "C": 4})
    router.receive_distance_vector("B", {"C": 1, "D": 1})
    router.receive_distance_vector("B", {"D": Distance.UNREACHABLE})

    entry = router.distance_table["D"]
    assert entry.distance == Distance.UNREACHABLE
    assert entry.next_hop is None
    assert "D" not in router.routing_table

    router.receive_distance_vector("C", {"D": 3})
    assert router.routing_table["D"] == RoutingTableEntry("D", "C", 7)


def test_unreachable_advert_for_unknown_destination_creates_nothing() -> None:
    router = _router({"B": 1})
    assert router.receive_distance_vector("B", {"Z": None}) is False
    assert "Z" not in router.distance_table


def test_vector_from_non_neighbor_is_dropped() -> None:
    router = _router({"B": 1})
    before = router.distance_table
    assert router.receive_distance_vector("X", {"Y": 1}) is False
    assert router.distance_table == before
    assert router.stats["dropped_updates"] == 1
    assert router.stats["updates_received"] == 0


def test_negative_advertised_distance_is_rejected() -> None:
    router = _router({"B": 1})
    with pytest.raises(ValueError):
        router.receive_distance_vector("B", {"C": -1})


def test_remove_neighbor_marks_dependent_routes_unreachable() -> None:
    router = _router({"B": 1, "C": 4})
    router.receive_distance_vector("B", {"C": 1, "D": 1})
    router.remove_neighbor("B")

    vector = router.get_distance_vector()
    assert vector["B"] == Distance.UNREACHABLE
    assert vector["D"] == Distance.UNREACHABLE
    assert vector["C"] == Distance.UNREACHABLE
    assert vector["A"] == Distance.finite(0)
    assert router.neighbors() == {"C": 4}
    assert router.receive_distance_vector("B", {"D": 0}) is False


def test_remove_unknown_neighbor_is_noop() -> None:
    router = _router({"B": 1})
    before = router.distance_table
    router.remove_neighbor("Z")
    assert router.distance_table == before


def test_poison_reverse_advertises_unreachable_back_to_next_hop() -> None:
    router = _router({"B": 1, "D": 1})
    router.receive_distance_vector("B", {"C": 1})

    to_b = router.send_distance_vector("B")
    to_d = router.send_distance_vector("D")
    assert to_b["C"] == Distance.UNREACHABLE
    assert to_b["B"] == Distance.UNREACHABLE
    assert to_b["A"] == Distance.finite(0)
    assert to_d["C"] == Distance.finite(2)

    outbound = router.consume_outbound()
    assert [m.dst for m in outbound] == ["B", "D"]
    assert all(isinstance(m, DistanceVectorUpdate) and m.src == "A" for m in outbound)
    assert router.stats["updates_sent"] == 2
    assert router.consume_outbound() == []


def test_split_horizon_without_poison_omits_routes() -> None:
    router = _router({"B": 1, "D": 1}, poison_reverse=False)
    router.receive_distance_vector("B", {"C": 1})
    vector = router.send_distance_vector("B")
    assert "C" not in vector
    assert vector["D"] == Distance.finite(1)


def test_send_to_non_neighbor_raises() -> None:
    with pytest.raises(KeyError):
        _router({"B": 1}).send_distance_vector("Z")


def test_max_distance_caps_relaxed_routes() -> None:
    router = _router({"B": 1}, max_distance=10)
    router.receive_distance_vector("B", {"C": 9, "D": 10})
    assert router.routing_table["C"].cost == 10
    assert "D" not in router.distance_table


def test_advertise_skips_excluded_neighbor() -> None:
    router = _router({"B": 1, "C": 1, "D": 1})
    assert router.advertise(exclude="C") == 2
    assert [m.dst for m in router.consume_outbound()] == ["B", "D"]
