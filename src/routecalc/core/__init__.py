"""Topology, message transport and the simulation coordinator."""
