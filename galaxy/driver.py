# galaxy/driver.py
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generator, List, Optional, Sequence

import numpy as np

from .clustering import cluster_placement
from .config import Config
from .equilibrium import EquilibriumCache, EquilibriumSolver, SolveProgress
from .events import log_event
from .forces import PhysicsConfig
from .integrator import Integrator
from .nodes import NodeStore

logger = logging.getLogger(__name__)


class LayoutMode(Enum):
    CONTINUOUS = "continuous"  # Live free-force simulation
    SOLVE = "solve"            # Static: settle once with the equilibrium solver
    CLUSTER = "cluster"        # Static: deterministic cluster placement


@dataclass
class NodeState:
    id: str
    position: np.ndarray
    velocity: np.ndarray
    compatibility: float
    is_central: bool
    is_dragged: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": [round(float(v), 4) for v in self.position],
            "velocity": [round(float(v), 4) for v in self.velocity],
            "compatibility": round(self.compatibility, 4),
            "is_central": self.is_central,
            "is_dragged": self.is_dragged,
        }


@dataclass
class Snapshot:
    tick: int
    dt: float
    mode: LayoutMode
    equilibrium_ready: bool
    nodes: List[NodeState] = field(default_factory=list)

    def get(self, node_id: str) -> Optional[NodeState]:
        for state in self.nodes:
            if state.id == node_id:
                return state
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick": self.tick,
            "dt": self.dt,
            "mode": self.mode.value,
            "equilibrium_ready": self.equilibrium_ready,
            "nodes": [s.to_dict() for s in self.nodes],
        }


class SimulationDriver:
    """
    Per-frame orchestrator.

    Each tick picks between free-force integration (continuous mode) and
    static layout (solve / cluster), keeps the equilibrium cache in step with
    the node-set, and publishes a Snapshot to subscribers.
    """

    def __init__(
        self,
        store: NodeStore,
        physics: Optional[PhysicsConfig] = None,
        mode: Optional[LayoutMode] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.physics = physics or PhysicsConfig.from_config()
        self.mode = mode or LayoutMode(Config.driver.LAYOUT_MODE)
        self.clock = clock

        self.integrator = Integrator(self.physics)
        self.solver = EquilibriumSolver(self.physics, clock=clock)
        self.cache = EquilibriumCache()

        self.dragged_id: Optional[str] = None
        self.tick_count = 0
        self.last_snapshot: Optional[Snapshot] = None

        self._pending_physics: Optional[PhysicsConfig] = None
        self._solve: Optional[Generator[SolveProgress, None, Optional[np.ndarray]]] = None
        self._solve_key = None
        self._last_time = clock()
        self._subscribers: List[Callable[[Snapshot], None]] = []

    # --- Pub/sub ---
    def subscribe(self, callback: Callable[[Snapshot], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # --- Configuration ---
    def update_physics(self, **changes) -> PhysicsConfig:
        """Queue a partial physics update; it takes effect on the next tick."""
        base = self._pending_physics or self.physics
        self._pending_physics = base.updated(**changes)
        return self._pending_physics

    def set_mode(self, mode: LayoutMode):
        if mode == self.mode:
            return
        self.mode = mode
        self.invalidate_equilibrium()

    def _apply_pending_physics(self):
        if self._pending_physics is None:
            return
        self.physics = self._pending_physics
        self._pending_physics = None
        self.integrator.config = self.physics
        self.solver.physics = self.physics
        self.invalidate_equilibrium()

    # --- Cache ---
    def layout_key(self) -> tuple:
        central = self.store.central
        return (
            len(self.store),
            self.store.attribute_count,
            tuple(self.store.preferences),
            central.id if central else None,
            tuple(tuple(n.attributes) for n in self.store.nodes),
        )

    def invalidate_equilibrium(self):
        """Clear the cached resting positions; the next static tick recomputes them."""
        if self._solve is not None:
            self._solve.close()
            self._solve = None
        if self.cache.ready:
            log_event("CACHE", "Equilibrium cache invalidated")
        self.cache.clear()

    def force_snap_to_equilibrium(self) -> bool:
        """Put every node except the dragged one straight onto its cached resting position."""
        if not self.cache.ready or self.cache.positions.shape[0] != len(self.store):
            logger.debug("force_snap_to_equilibrium: no usable cache")
            return False
        positions = self.cache.positions.copy()
        velocities = np.zeros_like(positions)
        dragged = self.store.index_of(self.dragged_id) if self.dragged_id else None
        if dragged is not None:
            positions[dragged] = self.store.positions()[dragged]
        self.store.apply_kinematics(positions, velocities)
        return True

    # --- Collaborator input ---
    def recalculate_compatibilities(self, central_traits: Sequence[float]) -> Dict[str, float]:
        scores = self.store.recalculate_compatibilities(central_traits)
        self.invalidate_equilibrium()
        return scores

    def set_central(self, node_id: str) -> bool:
        if node_id == self.dragged_id and self.store.get(node_id) is not None:
            self.end_drag()
        changed = self.store.set_central(node_id)
        if changed:
            self.invalidate_equilibrium()
        return changed

    def begin_drag(self, node_id: str) -> bool:
        node = self.store.get(node_id)
        if node is None or node.is_central:
            logger.debug(f"begin_drag: ignoring {node_id!r}")
            return False
        self.dragged_id = node_id
        node.velocity = np.zeros(3)
        return True

    def drag_to(self, node_id: str, position: Sequence[float]) -> bool:
        node = self.store.get(node_id)
        if node_id != self.dragged_id or node is None or node.is_central:
            logger.debug(f"drag_to: {node_id!r} is not being dragged")
            return False
        node.position = np.array(position, dtype=np.float64).reshape(3)
        node.velocity = np.zeros(3)
        return True

    def end_drag(self):
        node = self.store.get(self.dragged_id) if self.dragged_id else None
        if node is not None:
            node.velocity = np.zeros(3)
        self.dragged_id = None

    # --- Tick ---
    def _frame_dt(self, dt: Optional[float]) -> float:
        now = self.clock()
        if dt is None:
            dt = now - self._last_time
        self._last_time = now
        return min(max(dt, 0.0), Config.driver.MAX_DT)

    def tick(self, dt: Optional[float] = None) -> Snapshot:
        dt = self._frame_dt(dt)
        self.tick_count += 1
        self._apply_pending_physics()

        if self.dragged_id is not None and self.store.get(self.dragged_id) is None:
            self.dragged_id = None

        if self.cache.ready and self.cache.key != self.layout_key():
            self.invalidate_equilibrium()

        if len(self.store) > 0:
            if self.mode == LayoutMode.CONTINUOUS:
                self.integrator.step(self.store, dt, self.dragged_id)
            elif self.cache.ready:
                self.integrator.settle(self.store, self.cache.positions, dt, self.dragged_id)
            else:
                self._build_static_layout()
            self._pin_central()

        snapshot = self._snapshot(dt)
        self.last_snapshot = snapshot
        for callback in list(self._subscribers):
            callback(snapshot)
        return snapshot

    def _build_static_layout(self):
        key = self.layout_key()
        if self.mode == LayoutMode.CLUSTER:
            self.cache.store(cluster_placement(self.store.nodes, self.store.preferences), key)
            return

        if self._solve is None or self._solve_key != key:
            if self._solve is not None:
                self._solve.close()
            self._solve = self.solver.steps(self.store)
            self._solve_key = key

        budget = Config.equilibrium.STEPS_PER_TICK
        advanced = 0
        try:
            while budget <= 0 or advanced < budget:
                next(self._solve)
                advanced += 1
        except StopIteration as done:
            self._solve = None
            if done.value is not None:
                self.cache.store(done.value, key)
            # Timed out: cache stays empty and the next tick starts over

    def _pin_central(self):
        central = self.store.central
        if central is not None:
            central.position = np.zeros(3)
            central.velocity = np.zeros(3)

    def _snapshot(self, dt: float) -> Snapshot:
        states = [
            NodeState(
                id=node.id,
                position=node.position.copy(),
                velocity=node.velocity.copy(),
                compatibility=1.0 if node.is_central else float(node.compatibility or 0.0),
                is_central=node.is_central,
                is_dragged=node.id == self.dragged_id,
            )
            for node in self.store.nodes
        ]
        return Snapshot(
            tick=self.tick_count,
            dt=dt,
            mode=self.mode,
            equilibrium_ready=self.cache.ready,
            nodes=states,
        )
