"""Force-directed galaxy layout around a central node."""

from .driver import LayoutMode, SimulationDriver, Snapshot
from .forces import PhysicsConfig
from .nodes import Node, NodeStore, generate_nodes

__all__ = ["LayoutMode", "SimulationDriver", "Snapshot", "PhysicsConfig", "Node", "NodeStore", "generate_nodes"]
