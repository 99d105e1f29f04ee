"""
# Parameter Grid Configuration

This module provides the parameter grid used to drive grid simulations: an
ordered mapping from parameter name to the sequence of values that parameter
takes, plus the expansion of that mapping into concrete grid cells.

## Classes

- `GridCell`: One concrete parameter combination and its coordinates
- `ParameterGrid`: Ordered mapping of parameter names to value sequences

## Example Usage

```python
from gridsim_tools.config.grid import ParameterGrid

grid = ParameterGrid.from_dict({
    'n': [50, 100],
    'loc': [0, 1],
})

grid.validate(func=trial, max_grid=1000)

for cell in grid.expand():
    print(cell.coords, cell.params)   # (0, 0) {'n': 50, 'loc': 0}, ...
```
"""

from gridsim_tools.errors import InvalidGridError, GridTooLargeError

import inspect
import itertools
import math
import numpy as np
from dataclasses import dataclass
from typing import Any, Callable, Iterator


DEFAULT_MAX_GRID = 1000
"""Default ceiling on the number of grid cells in one simulation."""


def is_scalar(value: Any) -> bool:
    """Return True for values a grid or a trial record may hold."""
    return np.isscalar(value) and not isinstance(value, bytes)


def to_builtin(value: Any) -> Any:
    """Convert numpy scalars to their Python equivalents (JSON friendly)."""
    return value.item() if isinstance(value, np.generic) else value


@dataclass(frozen=True)
class GridCell:
    """
    One concrete combination of parameter values.

    Attributes:
        params (dict[str, Any]): Parameter name to the value for this cell.
        coords (tuple[int, ...]): 0-based index of each value within its
            parameter's sequence, in grid declaration order.
    """
    params: dict[str, Any]
    coords: tuple[int, ...]


def _check_values(name: str, values):
    if len(values) == 0:
        raise InvalidGridError("Empty parameter grid", {"parameter": name})
    for value in values:
        if not is_scalar(value):
            raise InvalidGridError(
                "Grid values must be scalars",
                {"parameter": name, "value": value}
            )


class ParameterGrid(dict[str, list]):
    """
    Ordered mapping from parameter name to the values it takes.

    The declaration order of the parameters fixes both the order in which
    cells are produced and the axis order of every result array: parameter
    ``i`` in declaration order is axis ``i`` of each array.

    Example:
        ```python
        grid = ParameterGrid.from_dict({'n': [50, 100], 'scale': [1, 2, 3]})
        grid.shape   # (2, 3)
        grid.size    # 6
        ```
    """

    @classmethod
    def from_dict(cls, data: dict):
        """
        Create a ParameterGrid from a name to sequence mapping.

        Args:
            data (dict): Parameter names mapped to sequences (list, tuple,
                range or 1-D numpy array) of scalar values.

        Returns:
            ParameterGrid: Grid with the same order as ``data``.

        Raises:
            InvalidGridError: If a value is not a sequence, a sequence is
                empty, or a sequence element is not a scalar.
        """
        grid = {}
        for name, values in data.items():
            if not isinstance(name, str):
                raise InvalidGridError(
                    "Parameter names must be strings", {"name": name}
                )
            if isinstance(values, np.ndarray):
                if values.ndim != 1:
                    raise InvalidGridError(
                        "Parameter values must be one dimensional",
                        {"parameter": name, "ndim": values.ndim}
                    )
                values = values.tolist()
            if not isinstance(values, (list, tuple, range)):
                raise InvalidGridError(
                    "Parameter values must be a sequence",
                    {"parameter": name, "type": type(values).__name__}
                )
            values = list(values)
            _check_values(name, values)
            grid[name] = values
        return cls(grid)

    @property
    def names(self) -> list[str]:
        return list(self.keys())

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(len(values) for values in self.values())

    @property
    def size(self) -> int:
        """Number of grid cells (product of the sequence lengths)."""
        return math.prod(self.shape)

    def validate(self, func: Callable | None = None, max_grid: int = DEFAULT_MAX_GRID):
        """
        Check the grid against a trial function and the size ceiling.

        Args:
            func (Callable, optional): Trial function whose formal arguments
                the grid names must match. Skipped when None.
            max_grid (int, optional): Largest admissible number of cells.
                Defaults to 1000.

        Raises:
            InvalidGridError: If the grid is empty, a value is not a
                sequence of scalars, a sequence is empty, a name is not a
                formal argument of ``func``, or a required argument of
                ``func`` has no grid.
            GridTooLargeError: If ``size`` exceeds ``max_grid``.
        """
        if len(self) == 0:
            raise InvalidGridError("Parameter grid has no parameters")

        for name, values in self.items():
            if not isinstance(values, (list, tuple, range, np.ndarray)) \
                    or getattr(values, "ndim", 1) != 1:
                raise InvalidGridError(
                    "Parameter values must be a one dimensional sequence",
                    {"parameter": name, "type": type(values).__name__}
                )
            _check_values(name, values)

        if func is not None:
            self._check_signature(func)

        if self.size > max_grid:
            raise GridTooLargeError(
                "Grid size exceeds the configured ceiling; raise max_grid to run it",
                {"size": self.size, "max_grid": max_grid}
            )

    def _check_signature(self, func: Callable):
        signature = inspect.signature(func)
        named = {
            name: p for name, p in signature.parameters.items()
            if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
        }
        accepts_kwargs = any(
            p.kind == p.VAR_KEYWORD for p in signature.parameters.values()
        )

        for name in self.keys():
            if name not in named and not accepts_kwargs:
                raise InvalidGridError(
                    "Grid parameter is not an argument of the trial function",
                    {"parameter": name, "function": func.__name__,
                     "arguments": list(named)}
                )

        missing = [
            name for name, p in named.items()
            if p.default is p.empty and name not in self
        ]
        if missing:
            raise InvalidGridError(
                "Trial function arguments without a grid",
                {"function": func.__name__, "missing": missing}
            )

    def expand(self) -> Iterator[GridCell]:
        """
        Lazily produce every grid cell.

        The first declared parameter varies slowest and the last declared
        parameter varies fastest, i.e. row-major order over the coordinates.

        Yields:
            GridCell: One cell per parameter combination.
        """
        names = self.names
        ranges = [range(n) for n in self.shape]
        for coords in itertools.product(*ranges):
            params = {
                name: self[name][i] for name, i in zip(names, coords)
            }
            yield GridCell(params=params, coords=coords)

    def reduced(self) -> "ParameterGrid":
        """
        Extremal sub-grid: ``{min, max}`` of each numeric parameter.

        Non-numeric parameters keep their first and last values. A parameter
        whose extremes coincide keeps a single value.

        Returns:
            ParameterGrid: The reduced grid, same parameter order.
        """
        reduced = {}
        for name, values in self.items():
            numeric = all(
                isinstance(v, (int, float, np.number)) and not isinstance(v, (bool, np.bool_))
                for v in values
            )
            if numeric:
                extremes = [min(values), max(values)]
            else:
                extremes = [values[0], values[-1]]
            if extremes[0] == extremes[1]:
                extremes = extremes[:1]
            reduced[name] = extremes
        return ParameterGrid(reduced)

    def to_dict(self) -> dict[str, list]:
        """Plain ``dict`` of builtin values, suitable for JSON."""
        return {
            name: [to_builtin(v) for v in values]
            for name, values in self.items()
        }
