"""
# Result Aggregation

Collapses the repetition axis (the last axis) of raw result arrays.

## Functions

- `aggregate`: Reduce one raw array to its summary array
- `summarize`: Reduce every field of an artifact

## Example Usage

```python
from gridsim_tools.utils.aggregate import aggregate, summarize

mean = aggregate(artifact.results['decision'])            # default mean
spread = aggregate(artifact.results['estimate'], 'std')    # sample std
q90 = aggregate(artifact.results['estimate'], lambda x: np.quantile(x, 0.9))

summary = summarize(artifact, reducers={'estimate': 'median'})
```
"""

from gridsim_tools.errors import ReducerShapeError
from .results import SimulationArtifact, SummaryResults

import logging
import numpy as np
from typing import Callable, Union


Reducer = Union[str, Callable]
"""Reducer name ('mean', 'std', 'median') or a slice to scalar function."""


REDUCERS: dict[str, Callable] = {
    "mean": lambda a: np.mean(a, axis=-1),
    "std": lambda a: np.std(a, axis=-1, ddof=1),  # Sample std dev
    "median": lambda a: np.median(a, axis=-1),
}


def aggregate(array: np.ndarray, reducer: Reducer = "mean") -> np.ndarray:
    """
    Collapse the last (repetition) axis of a raw result array.

    Args:
        array (np.ndarray): Raw array of shape ``(*grid_shape, nrep)``.
        reducer (str | Callable, optional): A named reducer or a function
            mapping a 1-D repetition slice to a scalar. Defaults to 'mean'.

    Returns:
        np.ndarray: Summary array of shape ``grid_shape``.

    Raises:
        ReducerShapeError: If a callable reducer returns a non-scalar.
        ValueError: If ``reducer`` names an unknown reducer.
    """
    array = np.asarray(array)

    if isinstance(reducer, str):
        if reducer not in REDUCERS:
            raise ValueError(f"Unknown reducer: {reducer}")
        return np.asarray(REDUCERS[reducer](array))

    out = np.empty(array.shape[:-1], dtype=object)
    for idx in np.ndindex(*array.shape[:-1]):
        value = reducer(array[idx])
        if np.ndim(value) != 0:
            raise ReducerShapeError(
                "Reducer must return one scalar per repetition slice",
                {"index": idx, "shape": np.shape(value)}
            )
        out[idx] = value.item() if isinstance(value, np.ndarray) else value

    try:
        return out.astype(float)
    except (TypeError, ValueError):
        return out


def summarize(
    artifact: SimulationArtifact,
    reducers: Reducer | dict[str, Reducer] | None = None,
) -> SummaryResults:
    """
    Summary array for every field of an artifact.

    Args:
        artifact (SimulationArtifact): The simulation output.
        reducers (optional): One reducer for all fields, or a mapping of
            field name to reducer. Fields without an entry use 'mean'.

    Returns:
        SummaryResults: Field name to summary array. Artifacts that are
            already aggregated are returned as they are, with a warning when
            ``reducers`` is given.
    """
    if artifact.aggregated:
        if reducers is not None:
            logging.warning(
                "Artifact is already aggregated; requested reducers are ignored."
            )
        return SummaryResults(artifact.results)

    if reducers is None or not isinstance(reducers, dict):
        reducers = {name: reducers or "mean" for name in artifact.fields}

    return SummaryResults({
        name: aggregate(array, reducers.get(name, "mean"))
        for name, array in artifact.results.items()
    })
