import numpy as np
import pytest
from gridsim_tools.config.grid import ParameterGrid
from gridsim_tools.utils.results import SimulationArtifact


@pytest.fixture
def base():
    # value at (i_n, i_loc, i_scale) is 6 * i_n + 3 * i_loc + i_scale
    return np.arange(12, dtype=float).reshape(2, 2, 3)


@pytest.fixture
def artifact(base):
    """Two fields over n x loc x scale, two identical repetitions each."""
    grid = ParameterGrid.from_dict({"n": [50, 100], "loc": [0, 1], "scale": [1, 2, 3]})
    results = {
        "mean": np.stack([base, base], axis=-1),
        "median": np.stack([base + 100, base + 100], axis=-1),
    }
    return SimulationArtifact(
        results=results,
        grid=grid,
        nrep=2,
        function_name="trials.mean_median",
    )
