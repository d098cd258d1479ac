"""
Primordium — Runner
===================
Headless run with one progress line per snapshot interval, every milestone
as it fires, and a `run_summary.json` at the end.

    python -m primordium --ticks 20000 --seed 7 --preset hydrothermal_vent
"""

import argparse
import json
import os
import time

from .config import PRESETS, Config
from .simulation import Simulation


RULE = '─' * 120


def _progress_line(sim, elapsed):
    if not sim.stats_history:
        return f"  t={sim.tick_count:6d}  |  {elapsed:.1f}s"
    s = sim.stats_history[-1]
    return (
        f"  t={s['t']:6d}  |  mol={s['molecules']:5d} rx={s['reactions']:6d}  |  "
        f"cells={s['protocells']:4d}  |  pop={s['pop']:5d} sp={s['species']:3d} "
        f"gen={s['max_gen']:4d}  |  E={s['total_energy']:10.1f}  |  "
        f"O2={s['oxygen']:.3f} H={s['diversity']:.2f}  |  kills={s['total_kills']:4d}  |  "
        f"{elapsed:.1f}s"
    )


def run_simulation(cfg=None, ticks=None, quiet=False, viz=False):
    cfg = cfg or Config()
    ticks = cfg.total_ticks if ticks is None else ticks
    sim = Simulation(cfg)

    print(f"Primordium — seed {sim.seed}")
    print(f"World: {cfg.world_size:.0f}  |  Grid: {cfg.grid_resolution}×{cfg.grid_resolution}  |  "
          f"Molecules: {len(sim.molecules)}  |  Sources: {len(sim.energy_sources)}  |  "
          f"Ticks: {ticks}")
    print(RULE)

    if viz:
        # Needs the viz extra
        from .visualizer import run_viewer
        run_viewer(sim, ticks)
    else:
        start = time.time()
        seen = 0
        for _ in range(ticks):
            sim.tick()

            for m in sim.milestones[seen:]:
                print(f"  ★ t={m.tick:6d}  {m.type}: {m.description}")
            seen = len(sim.milestones)

            if not quiet and sim.tick_count % cfg.snapshot_interval == 0:
                print(_progress_line(sim, time.time() - start))

        el = time.time() - start
        print(RULE)
        print(f"Done in {el:.1f}s  |  Molecules: {len(sim.molecules)}  |  "
              f"Protocells: {len(sim.protocells)}  |  Pop: {sim.manager.population}  |  "
              f"Species: {sim.speciation.species_count}  |  Milestones: {len(sim.milestones)}")

    ledger = sim.ledger.summary()
    print(f"Energy — injected: {ledger['injected']:.1f}  dissipated: {ledger['dissipated']:.1f}  "
          f"held: {sim.total_energy():.1f}")

    os.makedirs(cfg.output_dir, exist_ok=True)
    with open(os.path.join(cfg.output_dir, "run_summary.json"), 'w') as f:
        json.dump({"seed": sim.seed,
                   "ticks": sim.tick_count,
                   "config": cfg.as_dict(),
                   "stats_history": sim.stats_history,
                   "milestones": [m._asdict() for m in sim.milestones],
                   "extinctions": [r._asdict() for r in sim.extinction.records],
                   "ledger": ledger}, f, indent=2)
    return sim


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="primordium",
                                     description="Run the Primordium artificial-life engine.")
    parser.add_argument("--ticks", type=int, default=None,
                        help="Ticks to run (default: config total_ticks)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--preset", choices=sorted(PRESETS), default=None,
                        help="Start from a named environment preset")
    parser.add_argument("--output-dir", default=None, help="Where run_summary.json goes")
    parser.add_argument("--quiet", action="store_true", help="Suppress per-interval progress lines")
    parser.add_argument("--viz", action="store_true", help="Open the pygame viewer")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    overrides = {}
    if args.seed is not None:
        overrides["random_seed"] = args.seed
    if args.output_dir is not None:
        overrides["output_dir"] = args.output_dir
    if args.preset:
        cfg = Config.from_preset(args.preset, **overrides)
    else:
        cfg = Config(**overrides)
    run_simulation(cfg, ticks=args.ticks, quiet=args.quiet, viz=args.viz)
    return 0


if __name__ == "__main__":
    main()
