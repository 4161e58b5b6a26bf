"""
Pytest configuration and shared fixtures for test isolation.
"""
import numpy as np
import pytest


# Reset global state between tests
@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset Config to defaults before and after each test."""
    from galaxy.config import Config
    Config.reset()
    yield
    Config.reset()


@pytest.fixture
def small_galaxy():
    """A seeded central node plus six outer nodes."""
    from galaxy.nodes import NodeStore, generate_nodes
    return NodeStore(generate_nodes(6, 3, preferences=[50, 50, 50], seed=7))


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_node():
    """Factory for bare nodes at a given position."""
    from galaxy.nodes import Node

    def _make(node_id, attributes, position=(0.0, 0.0, 0.0), central=False):
        return Node(
            id=node_id,
            name=node_id,
            attributes=list(attributes),
            position=np.array(position, dtype=float),
            is_central=central,
        )

    return _make
