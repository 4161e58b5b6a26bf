# galaxy/nodes.py
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from .config import Config
from .events import log_event
from .metrics import compatibility

logger = logging.getLogger(__name__)

ATTRIBUTE_NAMES = [
    "Intelligence", "Creativity", "Empathy", "Leadership", "Technical",
    "Communication", "Problem Solving", "Innovation", "Collaboration", "Adaptability",
]

PREFERENCE_PRESETS = [
    [90, 10, 80],
    [20, 85, 15],
    [50, 50, 50],
    [95, 5, 95],
    [10, 90, 20],
    [70, 30, 60],
]

SAMPLE_NODES = [
    {"id": "biology", "name": "Programmable Biology", "attributes": [85, 70, 60], "color": "#C300FF"},
    {"id": "web3", "name": "Scenius Web3", "attributes": [90, 80, 75], "color": "#FF3366"},
    {"id": "computation", "name": "Breakthrough Computation", "attributes": [95, 85, 90], "color": "#00FFFF"},
    {"id": "about", "name": "About Blueyard", "attributes": [60, 70, 80], "color": "#0080FF"},
    {"id": "knowledge", "name": "Liberated Knowledge", "attributes": [75, 85, 70], "color": "#FF80FF"},
]


def _vec3(value) -> np.ndarray:
    if value is None:
        return np.zeros(3)
    arr = np.asarray(value, dtype=np.float64).reshape(3)
    return arr.copy()


def clamp_traits(values: Sequence[float]) -> List[float]:
    top = Config.core.TRAIT_MAX
    return [float(min(top, max(0.0, v))) for v in values]


# --- Data models ---
@dataclass
class Node:
    id: str
    name: str
    attributes: List[float]
    attribute_names: Optional[List[str]] = None
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    radius: float = 1.0
    color: str = "#FF3366"
    is_central: bool = False
    compatibility: Optional[float] = None

    def __post_init__(self):
        self.attributes = clamp_traits(self.attributes)
        self.position = _vec3(self.position)
        self.velocity = _vec3(self.velocity)
        if self.attribute_names is not None:
            validate_attribute_names(self.attribute_names, len(self.attributes))
            self.attribute_names = list(self.attribute_names)
        if self.is_central:
            self.compatibility = 1.0


def validate_attribute_names(names: Sequence[str], length: int):
    if len(names) != length:
        raise ValueError(f"Expected {length} attribute names, got {len(names)}")
    seen = set()
    for name in names:
        key = name.strip().lower()
        if not key:
            raise ValueError("Attribute names must not be empty")
        if key in seen:
            raise ValueError(f"Duplicate attribute name: {name!r}")
        seen.add(key)


def default_attribute_names(count: int) -> List[str]:
    names = ATTRIBUTE_NAMES[:count]
    names += [f"Trait {i + 1}" for i in range(len(names), count)]
    return names


def diverse_preferences(rng: Optional[np.random.Generator] = None) -> List[float]:
    """Pick one of the preset preference profiles."""
    rng = rng if rng is not None else np.random.default_rng()
    return [float(v) for v in PREFERENCE_PRESETS[int(rng.integers(len(PREFERENCE_PRESETS)))]]


def _draw_trait(rng: np.random.Generator) -> float:
    # Banded distribution keeps the galaxy from collapsing toward the mean
    band = rng.random()
    if band < 0.2:
        value = rng.random() * 30
    elif band < 0.4:
        value = 70 + rng.random() * 30
    elif band < 0.6:
        value = 30 + rng.random() * 20
    elif band < 0.8:
        value = 50 + rng.random() * 20
    else:
        value = rng.random() * 15 if rng.random() < 0.5 else 85 + rng.random() * 15
    return float(max(0, min(100, math.floor(value))))


def generate_nodes(
    num_nodes: Optional[int] = None,
    num_attributes: Optional[int] = None,
    preferences: Optional[Sequence[float]] = None,
    seed: Optional[int] = None,
) -> List[Node]:
    """
    Build a fresh node-set: one central node at the origin plus `num_nodes`
    outer nodes on a loose orbit with tangential velocity.
    Passing a seed makes the whole set reproducible.
    """
    gen = Config.generation
    num_nodes = gen.NUM_NODES if num_nodes is None else num_nodes
    num_attributes = Config.core.DEFAULT_ATTRIBUTES if num_attributes is None else num_attributes
    if num_nodes < 0:
        raise ValueError(f"num_nodes must be >= 0, got {num_nodes}")
    if num_attributes < 1:
        raise ValueError(f"num_attributes must be >= 1, got {num_attributes}")

    if preferences is None:
        preferences = [Config.core.TRAIT_MAX / 2] * num_attributes
    preferences = clamp_traits(list(preferences)[:num_attributes])
    if len(preferences) < num_attributes:
        preferences += [Config.core.TRAIT_MAX / 2] * (num_attributes - len(preferences))

    rng = np.random.default_rng(seed)
    names = default_attribute_names(num_attributes)

    nodes = [
        Node(
            id="central",
            name="Central Node",
            attributes=list(preferences),
            attribute_names=list(names),
            radius=gen.CENTRAL_RADIUS,
            color=gen.CENTRAL_COLOR,
            is_central=True,
        )
    ]

    for i in range(num_nodes):
        angle = (i / num_nodes) * 2 * math.pi
        orbit = gen.ORBIT_MIN + rng.random() * gen.ORBIT_SPREAD
        attributes = [_draw_trait(rng) for _ in range(num_attributes)]
        nodes.append(
            Node(
                id=f"node-{i}",
                name=f"Node {i + 1}",
                attributes=attributes,
                attribute_names=list(names),
                position=[
                    math.cos(angle) * orbit,
                    (rng.random() - 0.5) * gen.HEIGHT_SPREAD,
                    math.sin(angle) * orbit,
                ],
                velocity=[
                    -math.sin(angle) * gen.ORBIT_SPEED,
                    0.0,
                    math.cos(angle) * gen.ORBIT_SPEED,
                ],
                radius=gen.NODE_RADIUS_MIN + rng.random() * gen.NODE_RADIUS_SPREAD,
                color=gen.NODE_COLOR,
                compatibility=compatibility(preferences, attributes),
            )
        )
    return nodes


def sample_nodes(preferences: Optional[Sequence[float]] = None) -> List[Node]:
    """The built-in showcase set, with a central node holding `preferences`."""
    preferences = clamp_traits(preferences if preferences is not None else [75, 25, 60])
    names = default_attribute_names(len(preferences))
    gen = Config.generation
    nodes = [
        Node(
            id="central",
            name="Central Node",
            attributes=list(preferences),
            attribute_names=list(names),
            radius=gen.CENTRAL_RADIUS,
            color=gen.CENTRAL_COLOR,
            is_central=True,
        )
    ]
    count = len(SAMPLE_NODES)
    for i, sample in enumerate(SAMPLE_NODES):
        angle = (i / count) * 2 * math.pi
        orbit = gen.ORBIT_MIN + gen.ORBIT_SPREAD / 2
        nodes.append(
            Node(
                id=sample["id"],
                name=sample["name"],
                attributes=list(sample["attributes"]),
                attribute_names=list(names),
                position=[math.cos(angle) * orbit, 0.0, math.sin(angle) * orbit],
                color=sample["color"],
                compatibility=compatibility(preferences, sample["attributes"]),
            )
        )
    return nodes


class NodeStore:
    """
    Owns the node-set and the central preferences.

    All mutation goes through the methods below. Each successful update
    notifies subscribers with the store itself and bumps `version`.
    Unknown node ids are ignored and reported as None/False.
    """

    def __init__(self, nodes: Optional[List[Node]] = None, preferences: Optional[Sequence[float]] = None):
        self._nodes: List[Node] = []
        self._index: Dict[str, int] = {}
        self._preferences: List[float] = []
        self._subscribers: List[Callable[["NodeStore"], None]] = []
        self.version = 0
        if nodes:
            self.replace(nodes, preferences)

    # --- Read access ---
    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    @property
    def preferences(self) -> List[float]:
        return list(self._preferences)

    @property
    def central(self) -> Optional[Node]:
        for node in self._nodes:
            if node.is_central:
                return node
        return None

    @property
    def central_index(self) -> int:
        for i, node in enumerate(self._nodes):
            if node.is_central:
                return i
        return -1

    @property
    def attribute_count(self) -> int:
        return len(self._nodes[0].attributes) if self._nodes else 0

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, node_id: str) -> Optional[Node]:
        idx = self._index.get(node_id)
        return self._nodes[idx] if idx is not None else None

    def index_of(self, node_id: str) -> Optional[int]:
        return self._index.get(node_id)

    def outer_nodes(self) -> List[Node]:
        return [n for n in self._nodes if not n.is_central]

    # --- Pub/sub ---
    def subscribe(self, callback: Callable[["NodeStore"], None]) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self):
        self.version += 1
        for callback in list(self._subscribers):
            callback(self)

    # --- Mutation ---
    def replace(self, nodes: List[Node], preferences: Optional[Sequence[float]] = None) -> List[Node]:
        """Swap in a whole new node-set (used when node or attribute counts change)."""
        centrals = [n for n in nodes if n.is_central]
        if len(centrals) != 1:
            raise ValueError(f"A node-set needs exactly one central node, got {len(centrals)}")
        lengths = {len(n.attributes) for n in nodes}
        if len(lengths) > 1:
            raise ValueError(f"Attribute vectors must share one length, got {sorted(lengths)}")
        ids = [n.id for n in nodes]
        if len(set(ids)) != len(ids):
            raise ValueError("Node ids must be unique")

        self._nodes = list(nodes)
        self._index = {n.id: i for i, n in enumerate(self._nodes)}
        if preferences is None:
            preferences = centrals[0].attributes
        self._preferences = clamp_traits(preferences)
        self._refresh_compatibilities()
        self._publish()
        return self.nodes

    def update_attributes(self, node_id: str, attributes: Sequence[float]) -> Optional[Node]:
        node = self.get(node_id)
        if node is None:
            logger.debug(f"update_attributes: unknown node {node_id!r}")
            return None
        if self.attribute_count and len(attributes) != self.attribute_count:
            raise ValueError(
                f"Node {node_id!r} needs {self.attribute_count} attributes, got {len(attributes)}"
            )
        node.attributes = clamp_traits(attributes)
        if not node.is_central:
            node.compatibility = compatibility(self._preferences, node.attributes)
        self._publish()
        return node

    def update_attribute_names(self, node_id: str, names: Sequence[str]) -> Optional[Node]:
        node = self.get(node_id)
        if node is None:
            logger.debug(f"update_attribute_names: unknown node {node_id!r}")
            return None
        validate_attribute_names(names, len(node.attributes))
        node.attribute_names = list(names)
        self._publish()
        return node

    def set_position(self, node_id: str, position: Sequence[float]) -> Optional[Node]:
        node = self.get(node_id)
        if node is None:
            return None
        node.position = _vec3(position)
        self._publish()
        return node

    def set_velocity(self, node_id: str, velocity: Sequence[float]) -> Optional[Node]:
        node = self.get(node_id)
        if node is None:
            return None
        node.velocity = _vec3(velocity)
        self._publish()
        return node

    def set_preferences(self, preferences: Sequence[float]) -> Dict[str, float]:
        self._preferences = clamp_traits(preferences)
        scores = self._refresh_compatibilities()
        self._publish()
        return scores

    def recalculate_compatibilities(self, preferences: Optional[Sequence[float]] = None) -> Dict[str, float]:
        """Recompute every non-central node's compatibility; returns {id: score}."""
        if preferences is not None:
            return self.set_preferences(preferences)
        scores = self._refresh_compatibilities()
        self._publish()
        return scores

    def set_central(self, node_id: str) -> bool:
        """
        Make `node_id` the central node. Preferences follow the new central
        node's own attributes, and the node is pinned to the origin.
        """
        target = self.get(node_id)
        if target is None:
            logger.debug(f"set_central: unknown node {node_id!r}")
            return False
        if target.is_central:
            return True

        previous = self.central
        for node in self._nodes:
            node.is_central = node.id == node_id
        target.position = np.zeros(3)
        target.velocity = np.zeros(3)
        self._preferences = list(target.attributes)
        self._refresh_compatibilities()
        log_event("CENTRAL", f"Central node -> {target.name}", {"previous": previous.id if previous else None})
        self._publish()
        return True

    def _refresh_compatibilities(self) -> Dict[str, float]:
        scores = {}
        for node in self._nodes:
            if node.is_central:
                node.compatibility = 1.0
                continue
            node.compatibility = compatibility(self._preferences, node.attributes)
            scores[node.id] = node.compatibility
        return scores

    # --- Bulk views for the simulation ---
    def attribute_matrix(self) -> np.ndarray:
        if not self._nodes:
            return np.zeros((0, 0))
        return np.array([n.attributes for n in self._nodes], dtype=np.float64)

    def positions(self) -> np.ndarray:
        if not self._nodes:
            return np.zeros((0, 3))
        return np.stack([n.position for n in self._nodes])

    def velocities(self) -> np.ndarray:
        if not self._nodes:
            return np.zeros((0, 3))
        return np.stack([n.velocity for n in self._nodes])

    def apply_kinematics(self, positions: np.ndarray, velocities: np.ndarray):
        """
        Write simulation output back onto the nodes. Called once per tick by
        the driver, which publishes its own snapshot, so no notification here.
        """
        for node, pos, vel in zip(self._nodes, positions, velocities):
            node.position = np.array(pos, dtype=np.float64)
            node.velocity = np.array(vel, dtype=np.float64)
