"""
# Result Merging

Combines artifacts produced by separate runs of the same simulation (same
trial function, same grid) into one artifact with more repetitions.

## Example Usage

```python
from gridsim_tools.utils.merge import merge, merge_from_store

combined = merge(run1, run2, run3)
combined.nrep == run1.nrep + run2.nrep + run3.nrep

# Everything saved under a name containing 'power'
combined = merge_from_store(ArtifactStore('/results'), 'power')
```
"""

from gridsim_tools.errors import IncompatibleArtifactsError
from .results import SimulationArtifact
from .store import ArtifactStore

import logging
import numpy as np


def _check_compatible(first: SimulationArtifact, other: SimulationArtifact, index: int):
    if first.aggregated or other.aggregated:
        raise IncompatibleArtifactsError(
            "Aggregated artifacts have no repetition axis to merge",
            {"artifact": index}
        )
    if other.function_name != first.function_name or other.function_source != first.function_source:
        raise IncompatibleArtifactsError(
            "Artifacts were produced by different trial functions",
            {"artifact": index, "function": other.function_name,
             "expected": first.function_name}
        )
    if other.grid.names != first.grid.names or other.grid != first.grid:
        raise IncompatibleArtifactsError(
            "Artifacts were produced on different parameter grids",
            {"artifact": index, "grid": other.grid.to_dict(),
             "expected": first.grid.to_dict()}
        )
    if set(other.fields) != set(first.fields):
        raise IncompatibleArtifactsError(
            "Artifacts hold different result fields",
            {"artifact": index, "fields": sorted(other.fields),
             "expected": sorted(first.fields)}
        )
    for name in first.fields:
        if other.results[name].shape[:-1] != first.results[name].shape[:-1]:
            raise IncompatibleArtifactsError(
                "Result arrays differ in shape",
                {"artifact": index, "field": name,
                 "shape": other.results[name].shape,
                 "expected": first.results[name].shape}
            )


def merge(*artifacts: SimulationArtifact) -> SimulationArtifact:
    """
    Concatenate artifacts along the repetition axis.

    Args:
        *artifacts (SimulationArtifact): At least one artifact; all must
            share trial function, grid (names, values and order), fields and
            array shapes.

    Returns:
        SimulationArtifact: New artifact whose ``nrep`` and ``elapsed`` are
            the sums of the inputs'.

    Raises:
        IncompatibleArtifactsError: If the inputs cannot be combined.
        ValueError: If no artifact is given.
    """
    if len(artifacts) == 0:
        raise ValueError("merge() needs at least one artifact")

    first = artifacts[0]
    for index, other in enumerate(artifacts):
        _check_compatible(first, other, index)

    results = {
        name: np.concatenate([a.results[name] for a in artifacts], axis=-1)
        for name in first.fields
    }

    return SimulationArtifact(
        results=results,
        grid=first.grid,
        nrep=sum(a.nrep for a in artifacts),
        function_name=first.function_name,
        function_source=first.function_source,
        elapsed=sum(a.elapsed for a in artifacts),
        cell_times=[sum(times) for times in zip(*(a.cell_times for a in artifacts))],
    )


def merge_from_store(store: ArtifactStore, substring: str) -> SimulationArtifact:
    """
    Load and merge every stored artifact whose name contains ``substring``.

    Raises:
        FileNotFoundError: If no stored artifact matches.
        IncompatibleArtifactsError: If the matches cannot be combined.
    """
    names = store.find(substring)
    if not names:
        raise FileNotFoundError(
            f"No artifacts matching '{substring}' in {store.directory}"
        )
    logging.info(f"Merging {len(names)} artifacts: {', '.join(names)}")
    return merge(*(store.load(name) for name in names))
