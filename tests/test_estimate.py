import pytest
from gridsim_tools.montecarlo import Sim, MonteCarloConfig
from gridsim_tools.montecarlo.estimate import (
    TimeEstimator,
    project_seconds,
    reduced_repetitions,
)
from gridsim_tools.utils.store import ArtifactStore

import trials


@pytest.mark.parametrize("nrep, expected", [(100, 10), (1000, 100), (3, 1), (1, 1)])
def test_reduced_repetitions(nrep, expected):
    assert reduced_repetitions(nrep) == expected


def test_projection_is_linear_in_units():
    # One second per cell batch of two units: half a second per unit.
    assert project_seconds([1.0, 1.0, 1.0], units_per_cell=2, total_units=12) == pytest.approx(6.0)


def test_projection_with_fixed_overhead():
    # First cell carries one second of setup cost.
    assert project_seconds([2.0, 1.0, 1.0], units_per_cell=1, total_units=10) == pytest.approx(11.0)


def test_projection_from_single_cell_is_proportional():
    assert project_seconds([2.0], units_per_cell=4, total_units=20) == pytest.approx(10.0)


def test_estimator_runs_reduced_grid():
    grid = {"n": [50, 75, 100], "loc": [0, 1, 2]}
    config = MonteCarloConfig(nrep=20, progress=False, save_res_test=True)
    estimate = TimeEstimator(Sim(trials.deterministic, grid, config)).estimate()

    assert estimate.cells == 9
    assert estimate.nrep == 20
    assert estimate.test_cells == 4
    assert estimate.test_nrep == 2
    assert estimate.seconds >= 0

    reduced = estimate.artifact
    assert reduced.grid == {"n": [50, 100], "loc": [0, 2]}
    assert reduced.results["total"].shape == (2, 2, 2)


def test_estimator_discards_reduced_run_by_default():
    config = MonteCarloConfig(nrep=10, progress=False)
    estimate = TimeEstimator(Sim(trials.deterministic, {"n": [1, 2], "loc": [0]}, config)).estimate()
    assert estimate.artifact is None


def test_estimator_persists_reduced_run(tmp_path):
    config = MonteCarloConfig(
        nrep=10, progress=False, save_res_test=True, results_dir=str(tmp_path)
    )
    TimeEstimator(Sim(trials.deterministic, {"n": [1, 2], "loc": [0]}, config)).estimate()

    store = ArtifactStore(str(tmp_path))
    assert store.find("time_test") == ["deterministic_time_test"]
    assert store.load("deterministic_time_test").nrep == 1
