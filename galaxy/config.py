# galaxy/config.py
import os
from dataclasses import dataclass, fields
from typing import Dict, Any

@dataclass
class CoreConfig:
    TRAIT_MAX: float = 100.0  # Trait values live in [0, TRAIT_MAX]
    DEFAULT_ATTRIBUTES: int = 3
    SEED: int = int(os.getenv("GALAXY_SEED", "13"))
    DEBUG: bool = os.getenv("GALAXY_DEBUG", "0") == "1"

@dataclass
class ForceConfig:
    # Defaults for a fresh PhysicsConfig
    ATTRACTION_K: float = 100.0
    REPULSION_K: float = 20.0
    DAMPING: float = 0.98
    MAX_DISTANCE: float = 200.0
    MIN_DISTANCE: float = 0.1
    ATTRACTION_FLOOR: float = 0.1  # 0.0 lets incompatible nodes drift away

@dataclass
class EquilibriumConfig:
    BASE_STEPS: int = 50
    STEPS_PER_NODE: int = 2
    MAX_STEPS: int = 200
    SYNTHETIC_DT: float = 1.0 / 60.0
    TIMEOUT_S: float = float(os.getenv("GALAXY_SOLVE_TIMEOUT", "10.0"))
    STEPS_PER_TICK: int = 0  # 0 = finish the solve inside one tick

    # Return-to-target
    RETURN_SPEED: float = 2.0
    SNAP_EPSILON: float = 0.1

@dataclass
class ClusterConfig:
    BASE_RADIUS: float = 15.0
    RADIAL_SPAN: float = 60.0
    HEIGHT_RANGE: float = 20.0

    # Members of one group
    SUB_RADIUS: float = 2.0
    SUB_RADIUS_STEP: float = 0.5
    SUB_HEIGHT: float = 0.5

    # Inter-group declustering
    MIN_SEPARATION: float = 8.0
    RELAX_PASSES: int = 10
    RELAX_FACTOR: float = 0.5

    MIN_RADIUS: float = 8.0
    MAX_RADIUS: float = 120.0

@dataclass
class DriverConfig:
    MAX_DT: float = float(os.getenv("GALAXY_MAX_DT", "0.033"))
    LAYOUT_MODE: str = os.getenv("GALAXY_LAYOUT_MODE", "continuous")  # or "solve", "cluster"

@dataclass
class GenerationConfig:
    NUM_NODES: int = 8
    ORBIT_MIN: float = 20.0
    ORBIT_SPREAD: float = 30.0
    HEIGHT_SPREAD: float = 10.0
    ORBIT_SPEED: float = 2.0

    CENTRAL_RADIUS: float = 2.0
    NODE_RADIUS_MIN: float = 0.6
    NODE_RADIUS_SPREAD: float = 0.4
    CENTRAL_COLOR: str = "#C300FF"
    NODE_COLOR: str = "#FF3366"


_SECTIONS = {
    "core": CoreConfig,
    "force": ForceConfig,
    "equilibrium": EquilibriumConfig,
    "cluster": ClusterConfig,
    "driver": DriverConfig,
    "generation": GenerationConfig,
}

_ENV_OVERRIDES = {
    "GALAXY_SEED": ("core", "SEED"),
    "GALAXY_DEBUG": ("core", "DEBUG"),
    "GALAXY_SOLVE_TIMEOUT": ("equilibrium", "TIMEOUT_S"),
    "GALAXY_MAX_DT": ("driver", "MAX_DT"),
    "GALAXY_LAYOUT_MODE": ("driver", "LAYOUT_MODE"),
}
_ENV_KEYS = {target: env_key for env_key, target in _ENV_OVERRIDES.items()}


class Config:
    """Centralized configuration."""
    core = CoreConfig()
    force = ForceConfig()
    equilibrium = EquilibriumConfig()
    cluster = ClusterConfig()
    driver = DriverConfig()
    generation = GenerationConfig()

    @classmethod
    def reset(cls):
        """Restore every section to its defaults (env vars re-read)."""
        for section_name, section_cls in _SECTIONS.items():
            fresh = section_cls()
            section = getattr(cls, section_name)
            for f in fields(section):
                setattr(section, f.name, getattr(fresh, f.name))
        cls._apply_env()

    @classmethod
    def _apply_env(cls):
        for env_key, (section_name, field_name) in _ENV_OVERRIDES.items():
            if env_key in os.environ:
                section = getattr(cls, section_name)
                setattr(section, field_name, _coerce(getattr(section, field_name), os.environ[env_key]))

    @classmethod
    def to_dict(cls) -> Dict[str, Any]:
        """Serialize all config sections to a flat dictionary."""
        result = {}
        for section_name in _SECTIONS:
            section = getattr(cls, section_name)
            for f in fields(section):
                key = f"{section_name}.{f.name}"
                result[key] = getattr(section, f.name)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any], apply_env_overrides: bool = True):
        """
        Update config from a flat dictionary.
        If apply_env_overrides is True, environment variables take precedence.
        """
        for key, value in data.items():
            if "." not in key:
                continue
            section_name, field_name = key.split(".", 1)
            if section_name not in _SECTIONS:
                continue
            section = getattr(cls, section_name)
            if not hasattr(section, field_name):
                continue

            env_key = _ENV_KEYS.get((section_name, field_name))
            if apply_env_overrides and env_key and env_key in os.environ:
                continue  # Skip, env var takes precedence

            setattr(section, field_name, _coerce(getattr(section, field_name), value))

    @classmethod
    def diff(cls, other_dict: Dict[str, Any]) -> Dict[str, tuple]:
        """
        Compare current config with another dict.
        Returns dict of {key: (current_value, other_value)} for differences.
        """
        current = cls.to_dict()
        differences = {}
        all_keys = set(current.keys()) | set(other_dict.keys())
        for key in all_keys:
            curr_val = current.get(key)
            other_val = other_dict.get(key)
            if curr_val != other_val:
                differences[key] = (curr_val, other_val)
        return differences


def _coerce(current_value: Any, value: Any) -> Any:
    if isinstance(current_value, bool):
        return str(value).lower() in ("1", "true", "yes")
    if isinstance(current_value, int):
        return int(value)
    if isinstance(current_value, float):
        return float(value)
    return value
