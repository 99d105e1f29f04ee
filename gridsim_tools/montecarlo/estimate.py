"""Pre-flight runtime estimation for grid simulations.

Runs the trial on a reduced grid (the extreme values of every parameter)
with a tenth of the repetitions, then extrapolates the measured time to the
full grid. The extrapolation is linear in the number of work units. Since
the reduced grid holds only extreme values, workloads whose cost is convex in
the parameter values are overestimated. It is a heuristic, never a bound.

Typical usage example:

    estimate = TimeEstimator(sim).estimate()
    print(f"About {estimate.seconds:.0f}s for {estimate.cells} cells")
"""

from gridsim_tools.utils.results import SimulationArtifact

import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

# Linear time model
from scipy.stats import linregress

if TYPE_CHECKING:
    from .sim import Sim


@dataclass
class TimeEstimate:
    """Projected runtime of a full simulation.

    Attributes:
        seconds (float): Projected wall time of the full run.
        cells (int): Grid cells of the full run.
        nrep (int): Repetitions of the full run.
        test_cells (int): Grid cells of the reduced run.
        test_nrep (int): Repetitions of the reduced run.
        test_seconds (float): Measured wall time of the reduced run.
        artifact (SimulationArtifact, optional): Reduced-run output, kept
            only when ``save_res_test`` is set.
    """
    seconds: float
    cells: int
    nrep: int
    test_cells: int
    test_nrep: int
    test_seconds: float
    artifact: Optional[SimulationArtifact] = None


def reduced_repetitions(nrep: int) -> int:
    """Repetitions used by the reduced run: a tenth, rounded, at least one."""
    return max(1, int(round(nrep / 10)))


def project_seconds(cell_times: list[float], units_per_cell: int, total_units: int) -> float:
    """Extrapolate measured per-cell times to ``total_units`` work units.

    Fits cumulative time against cumulative units. With a single measured
    cell the fit degrades to a proportional estimate through the origin.
    """
    cumulative_time = np.cumsum(cell_times)
    cumulative_units = units_per_cell * np.arange(1, len(cell_times) + 1)

    if len(cell_times) < 2:
        return float(cumulative_time[-1] / cumulative_units[-1] * total_units)

    fit = linregress(cumulative_units, cumulative_time)
    projected = fit.intercept + fit.slope * total_units
    # A negative intercept can pull tiny projections below zero.
    return float(max(projected, cumulative_time[-1]))


class TimeEstimator:
    """Estimates the runtime of a Sim from a reduced pre-flight run.

    Attributes:
        sim (Sim): The simulation to estimate. Its grid, trial function and
            execution mode are reused.
    """

    def __init__(self, sim: "Sim"):
        self.sim = sim

    def estimate(self) -> TimeEstimate:
        """Runs the reduced simulation and projects the full runtime.

        Returns:
            TimeEstimate: The projection and the reduced-run measurements.

        Raises:
            Any error of `Sim.execute` on the reduced grid, unchanged.
        """
        config = self.sim.config
        grid = self.sim.grid.reduced()
        nrep = reduced_repetitions(config.nrep)

        logging.info(
            f"Estimating runtime on {grid.size} reduced cells x {nrep} repetitions."
        )

        artifact = self.sim.execute(grid, nrep, progress=False)

        seconds = project_seconds(
            artifact.cell_times,
            units_per_cell=nrep,
            total_units=self.sim.grid.size * config.nrep,
        )

        if config.save_res_test and config.results_dir is not None:
            from gridsim_tools.utils.store import ArtifactStore

            name = f"{artifact.function_name.rsplit('.', 1)[-1]}_time_test"
            path = ArtifactStore(config.results_dir).save(name, artifact, overwrite=True)
            logging.info(f"Saved pre-flight results to {path}")

        return TimeEstimate(
            seconds=seconds,
            cells=self.sim.grid.size,
            nrep=config.nrep,
            test_cells=grid.size,
            test_nrep=nrep,
            test_seconds=artifact.elapsed,
            artifact=artifact if config.save_res_test else None,
        )
