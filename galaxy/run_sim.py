# galaxy/run_sim.py
"""Lay out a generated galaxy and dump it as JSON (plus a top-down PNG)."""
import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict

from .config import Config
from .driver import LayoutMode, SimulationDriver
from .nodes import NodeStore, generate_nodes, sample_nodes

logger = logging.getLogger(__name__)


def build_argparser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", help="JSON file of flat 'section.FIELD' settings")
    parser.add_argument("--nodes", type=int, help="Number of outer nodes")
    parser.add_argument("--attributes", type=int, help="Traits per node")
    parser.add_argument("--seed", type=int)
    parser.add_argument("--mode", choices=[m.value for m in LayoutMode], default="cluster")
    parser.add_argument("--ticks", type=int, default=300, help="Frames to simulate")
    parser.add_argument("--sample", action="store_true", help="Use the built-in sample nodes")
    parser.add_argument("--out", default="galaxy_layout", help="Output path stem")
    return parser


def load_config(path: Path) -> Dict[str, tuple]:
    """
    Apply a flat JSON config file. Returns the settings that did not take
    (env-overridden or unknown keys) as {key: (effective, requested)}.
    """
    with open(path, "r", encoding="utf-8") as f:
        data: Dict[str, Any] = json.load(f)
    Config.from_dict(data)
    ignored = {k: v for k, v in Config.diff(data).items() if k in data}
    for key, (effective, requested) in ignored.items():
        logger.warning(f"Config {key}={requested!r} not applied (effective: {effective!r})")
    return ignored


def plot_layout(snapshot, names, path: Path) -> bool:
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError:
        logger.warning("matplotlib not installed, skipping plot")
        return False

    fig = plt.figure(figsize=(6, 6))
    xs = [s.position[0] for s in snapshot.nodes]
    zs = [s.position[2] for s in snapshot.nodes]
    colors = [s.compatibility for s in snapshot.nodes]
    plt.scatter(xs, zs, c=colors, cmap="plasma", vmin=0.0, vmax=1.0)
    for state, x, z in zip(snapshot.nodes, xs, zs):
        plt.annotate(names[state.id], (x, z), fontsize=7)
    plt.title(f"Galaxy layout ({snapshot.mode.value})")
    plt.xlabel("x")
    plt.ylabel("z")
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close(fig)
    return True


def main() -> None:
    args = build_argparser().parse_args()
    if args.config:
        load_config(Path(args.config))
    logging.basicConfig(level=logging.DEBUG if Config.core.DEBUG else logging.INFO)

    if args.sample:
        nodes = sample_nodes()
    else:
        nodes = generate_nodes(
            args.nodes if args.nodes is not None else Config.generation.NUM_NODES,
            args.attributes if args.attributes is not None else Config.core.DEFAULT_ATTRIBUTES,
            seed=args.seed if args.seed is not None else Config.core.SEED,
        )
    store = NodeStore(nodes)
    driver = SimulationDriver(store, mode=LayoutMode(args.mode))

    snapshot = None
    for _ in range(max(1, args.ticks)):
        snapshot = driver.tick(dt=Config.driver.MAX_DT)

    names = {n.id: n.name for n in store.nodes}
    json_path = Path(f"{args.out}.json")
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(snapshot.to_dict(), f, ensure_ascii=False, indent=2)
    print(json_path)

    png_path = Path(f"{args.out}.png")
    if plot_layout(snapshot, names, png_path):
        print(png_path)


if __name__ == "__main__":
    main()
