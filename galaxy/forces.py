# galaxy/forces.py
"""
Force model: inverse-square attraction toward the central node and
inverse-square repulsion between dissimilar nodes.

Scalar functions (`attraction`, `repulsion`) work on one node or one pair.
The `*_field` variants compute net forces for a whole position array and are
what the integrator runs every tick.
"""
from dataclasses import dataclass, replace
from typing import Optional, Tuple

import numpy as np

from .config import Config


@dataclass(frozen=True)
class PhysicsConfig:
    attraction_k: float = 100.0
    repulsion_k: float = 20.0
    damping: float = 0.98
    max_distance: float = 200.0
    min_distance: float = 0.1
    attraction_floor: float = 0.1  # Minimum effective compatibility for attraction

    def __post_init__(self):
        if self.attraction_k < 0:
            raise ValueError(f"attraction_k must be >= 0, got {self.attraction_k}")
        if self.repulsion_k < 0:
            raise ValueError(f"repulsion_k must be >= 0, got {self.repulsion_k}")
        if not 0 < self.damping <= 1:
            raise ValueError(f"damping must be in (0, 1], got {self.damping}")
        if self.min_distance <= 0:
            raise ValueError(f"min_distance must be > 0, got {self.min_distance}")
        if self.max_distance <= self.min_distance:
            raise ValueError(
                f"max_distance ({self.max_distance}) must exceed min_distance ({self.min_distance})"
            )
        if not 0 <= self.attraction_floor <= 1:
            raise ValueError(f"attraction_floor must be in [0, 1], got {self.attraction_floor}")

    @classmethod
    def from_config(cls) -> "PhysicsConfig":
        f = Config.force
        return cls(
            attraction_k=f.ATTRACTION_K,
            repulsion_k=f.REPULSION_K,
            damping=f.DAMPING,
            max_distance=f.MAX_DISTANCE,
            min_distance=f.MIN_DISTANCE,
            attraction_floor=f.ATTRACTION_FLOOR,
        )

    def updated(self, **changes) -> "PhysicsConfig":
        """Partial update; returns a new validated config."""
        return replace(self, **changes)


def _unit(delta: np.ndarray) -> Tuple[np.ndarray, float]:
    norm = float(np.linalg.norm(delta))
    if norm == 0.0:
        return np.zeros(3), 0.0
    return delta / norm, norm


def attraction(
    central_pos: np.ndarray,
    node_pos: np.ndarray,
    compatibility: float,
    k: float,
    min_distance: float = 0.1,
    floor: float = 0.0,
) -> np.ndarray:
    """
    Pull of the central node on `node_pos`.
    F = k * max(floor, compatibility) / d^2, pointing at the center.
    """
    delta = np.asarray(central_pos, dtype=np.float64) - np.asarray(node_pos, dtype=np.float64)
    direction, norm = _unit(delta)
    distance = max(norm, min_distance)
    magnitude = k * max(floor, compatibility) / (distance * distance)
    return direction * magnitude


def repulsion(
    pos_a: np.ndarray,
    pos_b: np.ndarray,
    similarity: float,
    k: float,
    min_distance: float = 0.1,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Equal-and-opposite push between two nodes.
    Returns (force on a, force on b); dissimilar nodes push harder.
    """
    delta = np.asarray(pos_b, dtype=np.float64) - np.asarray(pos_a, dtype=np.float64)
    direction, norm = _unit(delta)
    distance = max(norm, min_distance)
    magnitude = k * (1.0 - similarity) / (distance * distance)
    force = direction * magnitude
    return -force, force


def attraction_field(
    positions: np.ndarray,
    compat: np.ndarray,
    config: PhysicsConfig,
    active: Optional[np.ndarray] = None,
    center: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Attraction on every active node [N, 3]; inactive rows are zero."""
    positions = np.asarray(positions, dtype=np.float64)
    n = positions.shape[0]
    forces = np.zeros((n, 3))
    if n == 0:
        return forces
    if active is None:
        active = np.ones(n, dtype=bool)
    if center is None:
        center = np.zeros(3)

    delta = center[None, :] - positions  # [N, 3]
    norms = np.linalg.norm(delta, axis=1)
    safe = np.where(norms > 0, norms, 1.0)
    directions = np.where(norms[:, None] > 0, delta / safe[:, None], 0.0)
    distance = np.maximum(norms, config.min_distance)
    magnitude = config.attraction_k * np.maximum(config.attraction_floor, compat) / (distance ** 2)

    forces[active] = directions[active] * magnitude[active, None]
    return forces


def repulsion_field(
    positions: np.ndarray,
    sim: np.ndarray,
    config: PhysicsConfig,
    active: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Net repulsion on every node [N, 3] from all other active nodes.
    Pairs farther apart than `max_distance` do not interact.
    """
    positions = np.asarray(positions, dtype=np.float64)
    n = positions.shape[0]
    if n < 2:
        return np.zeros((n, 3))
    if active is None:
        active = np.ones(n, dtype=bool)

    # delta[i, j] = pos_j - pos_i
    delta = positions[None, :, :] - positions[:, None, :]
    norms = np.linalg.norm(delta, axis=2)
    safe = np.where(norms > 0, norms, 1.0)
    directions = np.where(norms[:, :, None] > 0, delta / safe[:, :, None], 0.0)
    distance = np.maximum(norms, config.min_distance)
    magnitude = config.repulsion_k * (1.0 - sim) / (distance ** 2)

    pair_mask = active[:, None] & active[None, :]
    np.fill_diagonal(pair_mask, False)
    pair_mask &= norms <= config.max_distance
    magnitude = np.where(pair_mask, magnitude, 0.0)

    # Force on i from j points away from j: -direction[i, j]
    return -(directions * magnitude[:, :, None]).sum(axis=1)
