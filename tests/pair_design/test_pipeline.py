"""End-to-end: population -> scores -> assignment -> outcomes -> estimate."""
import json
import sys
import shutil
import tempfile
import warnings
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LinearRegression
from pair_design.exceptions import DuplicateUnitError, OddPopulationWarning
from pair_design.pipeline import attach_assignments, realize_outcomes, run_assignment, run_estimation
from pair_design.schema import DesignConfig
from pair_design.store import get_design_summary, read_assignments, read_design_metadata


@pytest.fixture
def temp_dir():
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def population():
    rng = np.random.default_rng(7)
    n = 60
    age = rng.integers(18, 80, n)
    visits = rng.poisson(4, n)
    base = np.exp(2.0 + 0.02 * age + 0.1 * visits + rng.normal(0, 0.2, n))
    return pd.DataFrame({
        "unit_id": [f"U{i}" for i in range(n)],
        "age": age,
        "visits": visits,
        "segment": rng.choice(["a", "b"], n),
        "y_control": base,
        "y_treated": base * 1.03,
    })


def test_no_loss_round_trip(population):
    """Join back on unit_id keeps N rows and every original column."""
    population = population.assign(predicted_score=population["age"] * 0.5)
    config = DesignConfig(experiment_id="rt", seed=3)
    assigned, result = run_assignment(population, config)

    assert len(assigned) == len(population)
    assert set(population.columns) < set(assigned.columns)
    assert {"stratum_id", "treated"} <= set(assigned.columns)
    merged = population.merge(assigned[["unit_id", "stratum_id", "treated"]], on="unit_id", how="inner")
    assert len(merged) == len(population)
    pd.testing.assert_frame_equal(
        assigned[population.columns].reset_index(drop=True),
        population.reset_index(drop=True),
    )
    assert result.n_treated == 30


def test_sklearn_scorer(population):
    model = LinearRegression().fit(population[["age", "visits"]], np.log(population["y_control"]))
    config = DesignConfig(experiment_id="sk", seed=8, feature_cols=["age", "visits"])
    assigned, result = run_assignment(population, config, scorer=model)

    assert assigned["predicted_score"].notna().all()
    pairs = assigned.groupby("stratum_id")["treated"].agg(["sum", "count"])
    assert (pairs["count"] == 2).all()
    assert (pairs["sum"] == 1).all()


def test_callable_scorer_and_odd_population(population):
    population = population.iloc[:9]
    config = DesignConfig(experiment_id="odd", seed=1)
    with pytest.warns(OddPopulationWarning):
        assigned, result = run_assignment(population, config, scorer=lambda c: c["age"])
    assert result.has_singleton
    assert assigned["treated"].notna().all()
    assert assigned["stratum_id"].max() == 5


def test_duplicate_population_ids(population):
    population = pd.concat([population, population.iloc[[0]]], ignore_index=True)
    population["predicted_score"] = 1.0
    with pytest.raises(DuplicateUnitError):
        run_assignment(population, DesignConfig(experiment_id="dup", seed=0))


def test_store_round_trip(population, temp_dir):
    population = population.assign(predicted_score=population["visits"])
    config = DesignConfig(experiment_id="stored", seed=5, name="Stored design")
    _, result = run_assignment(population, config, store_dir=temp_dir)

    table = read_assignments("stored", base_dir=temp_dir)
    pd.testing.assert_frame_equal(table, result.to_frame())
    meta = read_design_metadata("stored", base_dir=temp_dir)
    assert meta["seed"] == 5
    assert meta["n_strata"] == 30
    summary = get_design_summary("stored", base_dir=temp_dir)
    assert summary["treatment_count"] == summary["control_count"] == 30


def test_read_missing_design(temp_dir):
    assert read_assignments("nope", base_dir=temp_dir).empty
    assert read_design_metadata("nope", base_dir=temp_dir) == {}


def test_estimation_artifacts(population, temp_dir):
    population = population.assign(predicted_score=np.log(population["y_control"]))
    config = DesignConfig(experiment_id="est", seed=2)
    assigned, _ = run_assignment(population, config)
    records = realize_outcomes(assigned)

    est = run_estimation(records, config, artifacts_dir=temp_dir)
    saved = json.loads((Path(temp_dir) / "est" / "estimate.json").read_text())
    assert saved["experiment_id"] == "est"
    assert saved["coefficient"] == pytest.approx(est.coefficient)
    assert est.coefficient == pytest.approx(np.log(1.03), abs=0.02)


def test_realize_outcomes_picks_matching_arm():
    df = pd.DataFrame({"treated": [1, 0], "y_treated": [2.0, 3.0], "y_control": [5.0, 7.0]})
    out = realize_outcomes(df)
    assert out["observed_outcome"].tolist() == [2.0, 7.0]
    assert "observed_outcome" not in df.columns


def test_attach_rejects_existing_columns(population):
    population = population.assign(predicted_score=1.0)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", OddPopulationWarning)
        _, result = run_assignment(population, DesignConfig(experiment_id="x", seed=0))
    with pytest.raises(ValueError):
        attach_assignments(population.assign(treated=0), result)


def test_single_import_path():
    """Tests load the same pair_design tree that setup.py installs from src/."""
    import pair_design
    assert Path(pair_design.__file__).parent.parent.name == "src"
    assert "src.pair_design" not in sys.modules
