"""Grid simulation engine.

This module provides the Sim class, which repeats a user supplied trial
function for every combination of a parameter grid and collects the results
into one dense array per output field. Repetitions run sequentially in the
calling process or in parallel on a pool of worker processes; in both modes
every result is written to the slot named by its grid coordinates and
repetition index, so the arrays do not depend on completion order.

Typical usage example:

```python
    import numpy as np
    from gridsim_tools.montecarlo import MonteCarloConfig, Sim

    def trial(n, loc):
        x = np.random.normal(loc, 1, size=n)
        return {"decision": bool(abs(x.mean()) * np.sqrt(n) > 1.96)}

    config = MonteCarloConfig(nrep=1000, ncpus=4)
    sim = Sim(trial, {"n": [50, 100], "loc": [0, 1]}, config)
    artifact = sim.run()
    artifact.results["decision"].shape   # (2, 2, 1000)
```
"""

from gridsim_tools.config.grid import ParameterGrid, GridCell
from gridsim_tools.trial import Trial, TrialRecord, Schema
from gridsim_tools.utils.results import SimulationArtifact
from gridsim_tools.utils.aggregate import summarize
from .config import MonteCarloConfig
from .dependencies import DependencyResolver, ProvisioningManifest, function_namespace
from .pool import WorkerPool

# Data
import numpy as np

# Execution
import contextlib
import inspect
import logging
import time
from typing import Callable, Iterator

# Progress
from tqdm import tqdm


def function_identity(func: Callable) -> tuple[str, str]:
    """Qualified name and source text of a function (source may be empty)."""
    name = f"{getattr(func, '__module__', '?')}.{getattr(func, '__qualname__', repr(func))}"
    try:
        source = inspect.getsource(func)
    except (OSError, TypeError):
        source = ""
    return name, source


def format_duration(seconds: float) -> str:
    """Render seconds as e.g. ``1h 02m 03s``."""
    seconds = int(round(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


class Sim:
    """Grid simulation runner.

    Attributes:
        func (Callable): The trial function. Its formal arguments must match
            the grid's parameter names. For parallel runs it must be defined
            at module level so worker processes can import it.
        grid (ParameterGrid): Parameter grid to expand.
        config (MonteCarloConfig): Repetitions, ceiling and execution mode.
    """

    def __init__(
        self,
        func: Callable,
        grid: ParameterGrid | dict,
        config: MonteCarloConfig = None,
    ):
        """Initializes the Sim with a trial function, its grid and settings.

        Args:
            func (Callable): The trial function.
            grid (ParameterGrid | dict): Parameter names mapped to value
                sequences.
            config (MonteCarloConfig, optional): Simulation settings.
                Defaults to ``MonteCarloConfig()``.
        """
        self.func = func
        self.grid = grid if isinstance(grid, ParameterGrid) else ParameterGrid.from_dict(grid)
        self.config = config if config is not None else MonteCarloConfig()

    def manifest(self) -> ProvisioningManifest:
        """Dependency manifest of the trial function plus ``export_also``."""
        manifest = DependencyResolver().resolve(self.func)
        if self.config.export_also:
            manifest = manifest.extend(
                self.config.export_also,
                function_namespace(self.func)
            )
        return manifest

    def run(self) -> SimulationArtifact:
        """Executes the full simulation.

        Validates the grid, optionally runs the pre-flight time estimate,
        then runs ``nrep`` repetitions for every grid cell.

        Returns:
            SimulationArtifact: One array per output field of shape
                ``(*grid.shape, nrep)``, or the mean summaries when
                ``config.raw`` is False.

        Raises:
            InvalidGridError: If the grid does not match the trial function.
            GridTooLargeError: If the grid exceeds ``config.max_grid``.
            InvalidReturnShapeError: If the trial returns something other
                than named scalars.
            InconsistentReturnShapeError: If a trial's fields differ from
                the first trial's fields.
            WorkerExecutionError: If a repetition fails in a worker process.
        """
        self.grid.validate(self.func, self.config.max_grid)

        if self.config.estimate_time:
            from .estimate import TimeEstimator

            estimate = TimeEstimator(self).estimate()
            logging.info(
                f"Estimated runtime: {format_duration(estimate.seconds)} "
                f"for {estimate.cells} cells x {estimate.nrep} repetitions."
            )

        mode = f"parallel ({self.config.ncpus} workers)" if self.config.parallel else "sequential"
        logging.info(
            f"Running {self.grid.size} grid cells x {self.config.nrep} repetitions, {mode}."
        )

        artifact = self.execute(self.grid, self.config.nrep, progress=self.config.progress)

        logging.info(f"Simulation finished in {format_duration(artifact.elapsed)}.")

        if not self.config.raw:
            artifact = SimulationArtifact(
                results=dict(summarize(artifact)),
                grid=artifact.grid,
                nrep=artifact.nrep,
                function_name=artifact.function_name,
                function_source=artifact.function_source,
                elapsed=artifact.elapsed,
                timestamp=artifact.timestamp,
                aggregated=True,
                cell_times=artifact.cell_times,
            )

        return artifact

    def execute(
        self,
        grid: ParameterGrid,
        nrep: int,
        progress: bool = True
    ) -> SimulationArtifact:
        """Runs ``nrep`` repetitions of every cell of ``grid``.

        The grid is not validated here; `run` does that for the full grid
        and the time estimator reuses this method for its reduced grid.

        Args:
            grid (ParameterGrid): Grid to expand.
            nrep (int): Repetitions per cell.
            progress (bool, optional): Show a progress bar over cells.

        Returns:
            SimulationArtifact: The raw result arrays.
        """
        name, source = function_identity(self.func)
        start = time.perf_counter()

        arrays: dict[str, np.ndarray] | None = None
        schema: Schema | None = None
        cell_times = []

        if self.config.parallel:
            pool = WorkerPool(self.config.ncpus, self.manifest())
        else:
            pool = contextlib.nullcontext()

        pbar = tqdm(total=grid.size, disable=not progress)

        try:
            with pool:
                for cell in grid.expand():
                    cell_start = time.perf_counter()

                    if self.config.parallel:
                        batch = pool.map_batch(self.func, cell, nrep)
                    else:
                        batch = self._run_sequential(cell, nrep)

                    for coords, rep, record in batch:
                        if schema is None:
                            schema = record.schema()
                            arrays = self._allocate(schema, grid.shape + (nrep,))
                        else:
                            record.check_schema(schema, cell, rep)
                        self._write(arrays, coords, rep, record)

                    cell_times.append(time.perf_counter() - cell_start)
                    pbar.update(1)
        finally:
            pbar.close()

        return SimulationArtifact(
            results=arrays,
            grid=grid,
            nrep=nrep,
            function_name=name,
            function_source=source,
            elapsed=time.perf_counter() - start,
            cell_times=cell_times,
        )

    def _run_sequential(
        self,
        cell: GridCell,
        nrep: int
    ) -> Iterator[tuple[tuple[int, ...], int, TrialRecord]]:
        for rep in range(nrep):
            try:
                record = Trial.run(self.func, cell)
            except Exception as e:
                e.add_note(f"while running trial with {cell.params} (rep {rep})")
                raise
            yield cell.coords, rep, record

    @staticmethod
    def _allocate(schema: Schema, shape: tuple[int, ...]) -> dict[str, np.ndarray]:
        """One empty array per field, dtype chosen by the field's kind."""
        arrays = {}
        for name, kind in schema:
            if kind.dtype is object:
                arrays[name] = np.full(shape, None, dtype=object)
            else:
                arrays[name] = np.zeros(shape, dtype=kind.dtype)
        return arrays

    @staticmethod
    def _write(
        arrays: dict[str, np.ndarray],
        coords: tuple[int, ...],
        rep: int,
        record: TrialRecord
    ):
        slot = coords + (rep,)
        for name, value in record.fields.items():
            arrays[name][slot] = value
