# galaxy/integrator.py
from typing import Optional, Sequence

import numpy as np

from .config import Config
from .forces import PhysicsConfig, attraction_field, repulsion_field
from .metrics import compatibility_scores, similarity_matrix
from .nodes import NodeStore


def integrate(
    positions: np.ndarray,
    velocities: np.ndarray,
    attributes: np.ndarray,
    prefs: Sequence[float],
    central_index: int,
    config: PhysicsConfig,
    dt: float,
    dragged_index: Optional[int] = None,
):
    """
    Advance one tick in place.

    1. Attraction toward the center for every free outer node.
    2. Pairwise repulsion between free outer nodes.
    3. Euler position update, then damping.
    The central node ends at the origin at rest. A dragged node takes no
    forces and no damping; its velocity is held at zero so releasing it
    imparts no momentum.
    """
    n = positions.shape[0]
    if n == 0:
        return

    active = np.ones(n, dtype=bool)
    if 0 <= central_index < n:
        active[central_index] = False
    if dragged_index is not None and 0 <= dragged_index < n:
        active[dragged_index] = False

    center = np.zeros(3)
    compat = compatibility_scores(prefs, attributes)
    velocities += attraction_field(positions, compat, config, active=active, center=center) * dt

    if active.sum() > 1:
        sim = similarity_matrix(attributes)
        velocities += repulsion_field(positions, sim, config, active=active) * dt

    moving = np.ones(n, dtype=bool)
    if dragged_index is not None and 0 <= dragged_index < n:
        moving[dragged_index] = False
        velocities[dragged_index] = 0.0
    positions[moving] += velocities[moving] * dt
    velocities[moving] *= config.damping

    if 0 <= central_index < n:
        positions[central_index] = 0.0
        velocities[central_index] = 0.0


def return_to_target(
    positions: np.ndarray,
    velocities: np.ndarray,
    targets: np.ndarray,
    central_index: int,
    dt: float,
    dragged_index: Optional[int] = None,
    speed: Optional[float] = None,
    epsilon: Optional[float] = None,
):
    """
    Move every free outer node toward its cached resting position at a fixed
    closing speed, snapping once it is within `epsilon`.
    """
    speed = Config.equilibrium.RETURN_SPEED if speed is None else speed
    epsilon = Config.equilibrium.SNAP_EPSILON if epsilon is None else epsilon
    max_step = speed * dt

    for i in range(min(positions.shape[0], targets.shape[0])):
        if i == central_index or i == dragged_index:
            continue
        delta = targets[i] - positions[i]
        dist = float(np.linalg.norm(delta))
        if dist < epsilon or dist <= max_step:
            positions[i] = targets[i]
        else:
            positions[i] += delta / dist * max_step
        velocities[i] = 0.0

    if dragged_index is not None and 0 <= dragged_index < velocities.shape[0]:
        velocities[dragged_index] = 0.0
    if 0 <= central_index < positions.shape[0]:
        positions[central_index] = 0.0
        velocities[central_index] = 0.0


class Integrator:
    """Runs `integrate` / `return_to_target` against a NodeStore."""

    def __init__(self, config: Optional[PhysicsConfig] = None):
        self.config = config or PhysicsConfig.from_config()

    def step(self, store: NodeStore, dt: float, dragged_id: Optional[str] = None):
        positions = store.positions()
        velocities = store.velocities()
        integrate(
            positions,
            velocities,
            store.attribute_matrix(),
            store.preferences,
            store.central_index,
            self.config,
            dt,
            dragged_index=store.index_of(dragged_id) if dragged_id else None,
        )
        store.apply_kinematics(positions, velocities)

    def settle(self, store: NodeStore, targets: np.ndarray, dt: float, dragged_id: Optional[str] = None):
        positions = store.positions()
        velocities = store.velocities()
        return_to_target(
            positions,
            velocities,
            targets,
            store.central_index,
            dt,
            dragged_index=store.index_of(dragged_id) if dragged_id else None,
        )
        store.apply_kinematics(positions, velocities)
