# galaxy/equilibrium.py
"""
Static layout by internal settling.

The solver runs the integrator for a bounded number of synthetic steps on
scratch buffers, starting from the live positions at rest, and hands back
the final positions as the new equilibrium cache. It is a generator: each
`next()` performs one solver step, so the caller decides how many steps fit
in a frame and cancels simply by no longer advancing it.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Generator, Hashable, Optional

import numpy as np

from .config import Config, EquilibriumConfig
from .events import log_event
from .forces import PhysicsConfig
from .integrator import integrate
from .nodes import NodeStore

logger = logging.getLogger(__name__)


@dataclass
class SolveProgress:
    step: int
    total_steps: int
    elapsed: float

    @property
    def fraction(self) -> float:
        return self.step / self.total_steps if self.total_steps else 1.0


@dataclass
class EquilibriumCache:
    """Resting positions [N, 3] in node order, tagged with the layout they belong to."""
    positions: Optional[np.ndarray] = None
    key: Optional[Hashable] = None

    @property
    def ready(self) -> bool:
        return self.positions is not None

    def store(self, positions: np.ndarray, key: Hashable):
        self.positions = np.array(positions, dtype=np.float64)
        self.key = key

    def clear(self):
        self.positions = None
        self.key = None


def step_budget(node_count: int, config: Optional[EquilibriumConfig] = None) -> int:
    config = config or Config.equilibrium
    return min(config.BASE_STEPS + config.STEPS_PER_NODE * node_count, config.MAX_STEPS)


def clamp_radius(positions: np.ndarray, max_radius: float) -> np.ndarray:
    norms = np.linalg.norm(positions, axis=1)
    scale = np.where(norms > max_radius, max_radius / np.where(norms > 0, norms, 1.0), 1.0)
    return positions * scale[:, None]


class EquilibriumSolver:
    def __init__(
        self,
        physics: Optional[PhysicsConfig] = None,
        config: Optional[EquilibriumConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.physics = physics or PhysicsConfig.from_config()
        self.config = config or Config.equilibrium
        self.clock = clock

    def steps(self, store: NodeStore) -> Generator[SolveProgress, None, Optional[np.ndarray]]:
        """
        Yield one SolveProgress per synthetic step.
        Returns the settled positions, or None if the wall-clock timeout hit.
        """
        positions = store.positions()
        velocities = np.zeros_like(positions)
        attributes = store.attribute_matrix()
        prefs = store.preferences
        central = store.central_index
        if 0 <= central < positions.shape[0]:
            positions[central] = 0.0

        total = step_budget(len(store), self.config)
        dt = self.config.SYNTHETIC_DT
        started = self.clock()
        logger.debug(f"Solving equilibrium: {len(store)} nodes, {total} steps at dt={dt:.4f}")

        for step in range(1, total + 1):
            elapsed = self.clock() - started
            if elapsed > self.config.TIMEOUT_S:
                log_event(
                    "ERROR",
                    "Equilibrium solve timed out, cache left empty",
                    {"step": step - 1, "total": total, "elapsed": round(elapsed, 3)},
                )
                return None
            integrate(positions, velocities, attributes, prefs, central, self.physics, dt)
            yield SolveProgress(step=step, total_steps=total, elapsed=elapsed)

        result = clamp_radius(positions, self.physics.max_distance)
        log_event("SOLVE", "Equilibrium reached", {"nodes": len(store), "steps": total})
        return result

    def solve(self, store: NodeStore) -> Optional[np.ndarray]:
        """Run the whole solve synchronously."""
        gen = self.steps(store)
        while True:
            try:
                next(gen)
            except StopIteration as done:
                return done.value
