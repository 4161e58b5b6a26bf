# galaxy/clustering.py
"""
Deterministic cluster placement.

A non-iterative alternative to the equilibrium solver: nodes with identical
trait vectors form a group, each group gets a polar slot derived from its
compatibility (radius) and a hash of its traits (angle, height), members
fan out on a small ring around the slot, and nearby groups are pushed apart
in a few relaxation passes.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import ClusterConfig, Config
from .events import log_event
from .metrics import compatibility, similarity, trait_hash
from .nodes import Node

logger = logging.getLogger(__name__)


@dataclass
class TraitGroup:
    traits: Tuple[float, ...]
    members: List[int] = field(default_factory=list)  # Indices into the node list
    base: np.ndarray = field(default_factory=lambda: np.zeros(3))
    angle: float = 0.0


def group_by_traits(nodes: Sequence[Node]) -> List[TraitGroup]:
    """Group non-central nodes by exact trait vector, in first-seen order."""
    groups: Dict[Tuple[float, ...], TraitGroup] = {}
    for i, node in enumerate(nodes):
        if node.is_central:
            continue
        key = tuple(node.attributes)
        if key not in groups:
            groups[key] = TraitGroup(traits=key)
        groups[key].members.append(i)
    return list(groups.values())


def group_anchor(traits: Sequence[float], prefs: Sequence[float], config: ClusterConfig) -> Tuple[np.ndarray, float]:
    """Base position and angle for one trait vector."""
    radius = config.BASE_RADIUS + (1.0 - compatibility(prefs, traits)) * config.RADIAL_SPAN
    angle = math.radians(trait_hash(traits) % 360)
    height = ((trait_hash(list(reversed(traits))) % 100) - 50) / 50.0 * config.HEIGHT_RANGE
    base = np.array([radius * math.cos(angle), height, radius * math.sin(angle)])
    return base, angle


def member_offset(index: int, size: int, config: ClusterConfig) -> np.ndarray:
    if size <= 1:
        return np.zeros(3)
    ring = config.SUB_RADIUS + index * config.SUB_RADIUS_STEP
    theta = 2 * math.pi * index / size
    lift = config.SUB_HEIGHT if index % 2 == 0 else -config.SUB_HEIGHT
    return np.array([ring * math.cos(theta), lift, ring * math.sin(theta)])


def _relax(groups: List[TraitGroup], config: ClusterConfig) -> int:
    """Push overlapping groups apart; returns the number of pushes applied."""
    threshold = 2 * config.MIN_SEPARATION
    pushes = 0
    for _ in range(config.RELAX_PASSES):
        moved = False
        for i in range(len(groups)):
            for j in range(i + 1, len(groups)):
                a, b = groups[i], groups[j]
                delta = b.base - a.base
                dist = float(np.linalg.norm(delta))
                if dist >= threshold:
                    continue
                if dist > 0:
                    direction = delta / dist
                else:
                    direction = np.array([math.cos(b.angle), 0.0, math.sin(b.angle)])
                weight = 1.0 - similarity(a.traits, b.traits)
                push = (threshold - dist) * weight * config.RELAX_FACTOR
                if push <= 0:
                    continue
                b.base = b.base + direction * push
                pushes += 1
                moved = True
        if not moved:
            break
    return pushes


def clamp_shell(positions: np.ndarray, low: float, high: float, fallback: np.ndarray) -> np.ndarray:
    """Scale each row so its distance from the origin lies in [low, high]."""
    out = positions.copy()
    for i, pos in enumerate(out):
        norm = float(np.linalg.norm(pos))
        if norm == 0.0:
            out[i] = fallback[i] * low
        elif norm < low:
            out[i] = pos * (low / norm)
        elif norm > high:
            out[i] = pos * (high / norm)
    return out


def cluster_placement(
    nodes: Sequence[Node],
    prefs: Sequence[float],
    config: Optional[ClusterConfig] = None,
) -> np.ndarray:
    """
    Deterministic resting positions [N, 3] in node order.
    The central node sits at the origin; every other node ends up between
    MIN_RADIUS and MAX_RADIUS from it.
    """
    config = config or Config.cluster
    positions = np.zeros((len(nodes), 3))
    groups = group_by_traits(nodes)

    for group in groups:
        group.base, group.angle = group_anchor(group.traits, prefs, config)

    pushes = _relax(groups, config)

    fallback = np.tile(np.array([1.0, 0.0, 0.0]), (len(nodes), 1))
    for group in groups:
        size = len(group.members)
        direction = np.array([math.cos(group.angle), 0.0, math.sin(group.angle)])
        for k, idx in enumerate(group.members):
            positions[idx] = group.base + member_offset(k, size, config)
            fallback[idx] = direction

    outer = np.array([not n.is_central for n in nodes], dtype=bool)
    if outer.any():
        positions[outer] = clamp_shell(positions[outer], config.MIN_RADIUS, config.MAX_RADIUS, fallback[outer])

    logger.debug(f"Cluster placement: {len(groups)} groups, {pushes} relaxation pushes")
    log_event("CLUSTER", "Cluster layout computed", {"nodes": len(nodes), "groups": len(groups)})
    return positions
