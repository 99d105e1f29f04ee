"""
# Results Management

This module provides the data structures holding the output of a grid
simulation and its summaries.

## Classes

- `SimulationArtifact`: Raw result arrays of one simulation run plus metadata
- `SummaryResults`: Per-field summary arrays with the repetition axis removed

## Example Usage

```python
from gridsim_tools.montecarlo import Sim

artifact = Sim(trial, {'n': [50, 100], 'loc': [0, 1]}).run()
artifact.results['decision'].shape    # (2, 2, nrep)
artifact.metadata()['elapsed']

# Summaries as a long-format DataFrame, one column per parameter and field
summary = summarize(artifact)
summary.to_frame(artifact.grid)
summary.save('/results/directory')
```
"""

from gridsim_tools.config.grid import ParameterGrid

from dataclasses import dataclass, field
from datetime import datetime, timezone
import pandas as pd
import numpy as np
import os


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SimulationArtifact:
    """
    Result arrays and metadata of one simulation run.

    Each array in ``results`` has shape ``(len(grid_1), ..., len(grid_k),
    nrep)``; axis ``i`` follows parameter ``i`` of ``grid`` and the last axis
    indexes repetitions. Arrays are read-only once the artifact exists;
    merging creates new arrays.

    Attributes:
        results (dict[str, np.ndarray]): Field name to result array.
        grid (ParameterGrid): The parameter grid that was simulated.
        nrep (int): Repetitions per grid cell.
        function_name (str): Qualified name of the trial function.
        function_source (str): Source text of the trial function, empty when
            unavailable.
        elapsed (float): Wall time of the run in seconds.
        timestamp (str): ISO-8601 UTC time the artifact was created.
        aggregated (bool): True when ``results`` hold summaries (repetition
            axis already collapsed) instead of raw repetitions.
        cell_times (list[float]): Wall time spent on each grid cell, in
            expansion order.
    """
    results: dict[str, np.ndarray]
    grid: ParameterGrid
    nrep: int
    function_name: str
    function_source: str = ""
    elapsed: float = 0.0
    timestamp: str = field(default_factory=utc_timestamp)
    aggregated: bool = False
    cell_times: list[float] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.grid, ParameterGrid):
            self.grid = ParameterGrid.from_dict(self.grid)
        frozen = {}
        for name, array in self.results.items():
            array = np.asarray(array)
            array.setflags(write=False)
            frozen[name] = array
        self.results = frozen

    @property
    def fields(self) -> list[str]:
        return list(self.results.keys())

    @property
    def shape(self) -> tuple[int, ...]:
        """Shape shared by every result array."""
        if self.aggregated:
            return self.grid.shape
        return self.grid.shape + (self.nrep,)

    def metadata(self) -> dict:
        """JSON-serializable description of the run (everything but arrays)."""
        return {
            "grid": self.grid.to_dict(),
            "nrep": self.nrep,
            "function_name": self.function_name,
            "function_source": self.function_source,
            "elapsed": self.elapsed,
            "timestamp": self.timestamp,
            "aggregated": self.aggregated,
            "cell_times": list(self.cell_times),
            "fields": self.fields,
        }

    @classmethod
    def from_metadata(cls, meta: dict, results: dict[str, np.ndarray]):
        """Rebuild an artifact from ``metadata()`` output and its arrays."""
        return cls(
            results={name: results[name] for name in meta["fields"]},
            grid=ParameterGrid.from_dict(meta["grid"]),
            nrep=meta["nrep"],
            function_name=meta["function_name"],
            function_source=meta.get("function_source", ""),
            elapsed=meta.get("elapsed", 0.0),
            timestamp=meta.get("timestamp", utc_timestamp()),
            aggregated=meta.get("aggregated", False),
            cell_times=meta.get("cell_times", []),
        )


class SummaryResults(dict[str, np.ndarray]):
    """
    Collection of summary arrays, one per output field.

    Each array has the grid's shape, i.e. the repetition axis of the raw
    array has been collapsed by a reducer.

    Example:
        ```python
        summary = SummaryResults({'decision': mean_array})
        summary.to_frame(grid)
        summary.save('/results/')   # writes decision.csv
        ```
    """

    def to_frame(self, grid: ParameterGrid) -> pd.DataFrame:
        """
        Long-format DataFrame: one row per grid cell.

        Columns are the grid parameters (in declaration order) followed by
        one column per field. Rows follow grid expansion order.

        Args:
            grid (ParameterGrid): The grid the summaries were computed on.

        Returns:
            pd.DataFrame: The summaries.
        """
        cells = list(grid.expand())
        frame = pd.DataFrame(
            [cell.params for cell in cells],
            columns=grid.names
        )
        for name, array in self.items():
            frame[name] = np.asarray(array).reshape(-1)
        return frame

    def save(self, directory: str, grid: ParameterGrid | None = None):
        """
        Save every summary to a CSV file named after its field.

        Args:
            directory (str): Existing directory to write into.
            grid (ParameterGrid, optional): When given, each file gets one
                column per parameter and one row per cell; otherwise arrays
                are flattened to a single column.

        Note:
            - Files are saved without row indices (index=False)
            - Existing files with the same names will be overwritten
        """
        for name, array in self.items():
            if grid is not None:
                data = SummaryResults({name: array}).to_frame(grid)
            else:
                data = pd.DataFrame({name: np.asarray(array).reshape(-1)})
            data.to_csv(os.path.join(directory, f"{name}.csv"), index=False)
