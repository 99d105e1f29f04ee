import numpy as np
import pytest
from gridsim_tools.errors import IncompatibleArtifactsError
from gridsim_tools.montecarlo import Sim, MonteCarloConfig
from gridsim_tools.utils.merge import merge, merge_from_store
from gridsim_tools.utils.results import SimulationArtifact
from gridsim_tools.utils.store import ArtifactStore

import trials


GRID = {"n": [10, 60], "loc": [0, 1, 2]}


def run(func=trials.deterministic, grid=GRID, nrep=2, **kwargs):
    config = MonteCarloConfig(nrep=nrep, progress=False, **kwargs)
    return Sim(func, grid, config).run()


def test_merge_sums_repetitions():
    a, b, c = run(nrep=2), run(nrep=3), run(nrep=4)
    merged = merge(a, b, c)

    assert merged.nrep == 9
    assert merged.results["total"].shape == (2, 3, 9)
    assert merged.elapsed == pytest.approx(a.elapsed + b.elapsed + c.elapsed)
    np.testing.assert_array_equal(merged.results["total"][..., 2:5], b.results["total"])
    assert merged.results["big"].dtype == np.bool_


def test_merge_is_associative():
    a, b, c = run(nrep=1), run(nrep=2), run(nrep=3)
    left = merge(merge(a, b), c)
    right = merge(a, merge(b, c))
    flat = merge(a, b, c)
    for name in a.fields:
        np.testing.assert_array_equal(left.results[name], right.results[name])
        np.testing.assert_array_equal(left.results[name], flat.results[name])
    assert left.nrep == right.nrep == flat.nrep == 6


def test_merge_single_artifact():
    a = run()
    merged = merge(a)
    assert merged.nrep == a.nrep
    assert merged is not a


def test_merge_nothing():
    with pytest.raises(ValueError):
        merge()


def test_merge_different_grid_values():
    with pytest.raises(IncompatibleArtifactsError):
        merge(run(), run(grid={"n": [10, 60], "loc": [0, 1, 3]}))


def test_merge_different_grid_order():
    with pytest.raises(IncompatibleArtifactsError):
        merge(run(), run(grid={"loc": [0, 1, 2], "n": [10, 60]}))


def test_merge_different_function():
    with pytest.raises(IncompatibleArtifactsError) as e:
        merge(run(), run(func=trials.decision))
    assert e.value.ctx["function"] == "trials.decision"


def test_merge_different_fields():
    a = run()
    b = SimulationArtifact(
        results={"total": a.results["total"]},
        grid=a.grid,
        nrep=a.nrep,
        function_name=a.function_name,
        function_source=a.function_source,
    )
    with pytest.raises(IncompatibleArtifactsError):
        merge(a, b)


def test_merge_ignores_field_order():
    a = run()
    b = SimulationArtifact(
        results={"big": a.results["big"], "total": a.results["total"]},
        grid=a.grid,
        nrep=a.nrep,
        function_name=a.function_name,
        function_source=a.function_source,
    )
    merged = merge(a, b)
    assert merged.fields == ["total", "big"]
    np.testing.assert_array_equal(merged.results["big"][..., 2:], a.results["big"])


def test_merge_aggregated():
    with pytest.raises(IncompatibleArtifactsError):
        merge(run(), run(raw=False))


def test_store_round_trip(tmp_path):
    store = ArtifactStore(str(tmp_path / "results"))
    artifact = run()
    store.save("deterministic_a", artifact)

    loaded = store.load("deterministic_a")
    assert loaded.grid == artifact.grid
    assert loaded.grid.names == artifact.grid.names
    assert loaded.nrep == artifact.nrep
    assert loaded.function_source == artifact.function_source
    assert loaded.cell_times == pytest.approx(artifact.cell_times)
    for name in artifact.fields:
        np.testing.assert_array_equal(loaded.results[name], artifact.results[name])
        assert loaded.results[name].dtype == artifact.results[name].dtype


def test_store_keeps_string_fields(tmp_path):
    grid = {"n": [1, 2]}
    artifact = SimulationArtifact(
        results={"label": np.array([["a", "bb"], ["ccc", "d"]], dtype=object)},
        grid=grid,
        nrep=2,
        function_name="trials.labels",
    )
    store = ArtifactStore(str(tmp_path))
    store.save("labels", artifact)

    loaded = store.load("labels")
    assert loaded.results["label"].dtype == object
    assert loaded.results["label"][1, 0] == "ccc"


def test_store_refuses_overwrite(tmp_path):
    store = ArtifactStore(str(tmp_path))
    artifact = run()
    store.save("x", artifact)
    with pytest.raises(FileExistsError):
        store.save("x", artifact)
    store.save("x", artifact, overwrite=True)


def test_store_find(tmp_path):
    store = ArtifactStore(str(tmp_path))
    artifact = run()
    for name in ["power_2", "power_1", "size_1"]:
        store.save(name, artifact)
    assert store.find("power") == ["power_1", "power_2"]
    assert store.find("nothing") == []
    assert ArtifactStore(str(tmp_path / "missing")).find("power") == []


def test_merge_from_store(tmp_path):
    store = ArtifactStore(str(tmp_path))
    store.save("power_1", run(nrep=2))
    store.save("power_2", run(nrep=5))

    merged = merge_from_store(store, "power")
    assert merged.nrep == 7

    with pytest.raises(FileNotFoundError):
        merge_from_store(store, "size")
