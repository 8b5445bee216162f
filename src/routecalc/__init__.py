"""Distance-vector and link-state route computation over simulated topologies."""

from routecalc.core.coordinator import SimulationCoordinator
from routecalc.core.topology import Topology
from routecalc.core.types import ConvergenceReport, Distance, LinkStatus
from routecalc.protocols.distance_vector import DistanceVectorRouter
from routecalc.protocols.link_state import LinkStateRouter

__version__ = "0.1.0"

__all__ = [
    "ConvergenceReport",
    "Distance",
    "DistanceVectorRouter",
    "LinkStateRouter",
    "LinkStatus",
    "SimulationCoordinator",
    "Topology",
]
