#!/usr/bin/env python3
"""
Run the paired design on a population CSV: stratify -> assign -> store.

Usage: run_design_demo.py <population.csv> [seed]

The CSV needs a unit_id column and a predicted_score column. Writes
data/designs/<id>/assignments.csv and design.json, plus a balance table.
"""

import logging
import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT / "src"))


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    import pandas as pd
    from pair_design.pipeline import run_assignment
    from pair_design.schema import DesignConfig
    from pair_design.stats import balance_table, covariate_balance

    csv_path = Path(sys.argv[1])
    seed = int(sys.argv[2]) if len(sys.argv) > 2 else 42
    if not csv_path.exists():
        print(f"ERROR: {csv_path} not found")
        sys.exit(1)

    experiment_id = csv_path.stem
    store_dir = ROOT / "data" / "designs"

    print("1. Stratifying and assigning...")
    population = pd.read_csv(csv_path)
    config = DesignConfig(experiment_id=experiment_id, seed=seed, name=f"Paired design {experiment_id}")
    assigned, result = run_assignment(population, config, store_dir=str(store_dir))
    print(f"   {result.n_strata} strata: {result.n_control} control, {result.n_treated} treatment")
    if result.has_singleton:
        print(f"   Singleton coin flip for: {', '.join(result.singleton_unit_ids)}")

    print("2. Checking covariate balance...")
    table = balance_table(covariate_balance(assigned))
    out_dir = store_dir / experiment_id
    table.to_csv(out_dir / "balance.csv", index=False)
    print(table.to_string(index=False))

    print(f"\n[OK] Design complete. Artifacts in {out_dir}:")
    for f in sorted(out_dir.iterdir()):
        print(f"   - {f.name}")


if __name__ == "__main__":
    main()
