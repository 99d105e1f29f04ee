"""
# Table Stacking

Reshapes the N-dimensional summaries of a simulation into 2D tables.

Every grid parameter is assigned to either the rows or the columns of the
table (see `TableSpec`). Dimensions on the same axis are nested: the last
one listed is the outermost label level and the first one listed varies
fastest. The `FIELDS` pseudo-dimension places several output fields side by
side in one table; without it each field gets its own table.

## Classes

- `LabelLevel`: One level of the multi-level row or column labels
- `RenderedTable`: Cell values, labels and formatting settings of one table
- `TableStacker`: Builds RenderedTables from a SimulationArtifact

## Example Usage

```python
from gridsim_tools.config.table import TableSpec, FIELDS
from gridsim_tools.tables import TableStacker

spec = TableSpec.from_names(rows=['loc', 'n'], cols=[FIELDS, 'scale'])
stacker = TableStacker(
    artifact,
    spec,
    transforms={'mean': abs},
    partial_grid={'n': [1, 3]},   # 1-based positions within the grid of n
    digits=2,
)
table, = stacker.build()
table.formatted()     # [['0.12', '0.10', ...], ...]
table.to_frame()      # pandas DataFrame with MultiIndex rows and columns
```
"""

from gridsim_tools.config.table import TableSpec, Dimension, ParameterDimension, FIELDS
from gridsim_tools.errors import DimensionCoverageError, PartialGridRangeError
from gridsim_tools.utils.aggregate import Reducer, summarize
from gridsim_tools.utils.results import SimulationArtifact

import math
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from typing import Any, Callable


def format_value(value: float, digits: int) -> str:
    """Fixed-point string with exactly ``digits`` decimals (``1.0 -> '1.00'``)."""
    return f"{value:.{digits}f}"


@dataclass(frozen=True)
class LabelLevel:
    """
    One level of a multi-level table header.

    Attributes:
        name (str): Name of the dimension at this level.
        values (tuple): Values of the dimension, in table order.
        spans (tuple[tuple[Any, int], ...]): Run-length grouping of the
            level across the leaf rows (or columns): each entry is a value
            and the number of consecutive leaves it spans.
    """
    name: str
    values: tuple
    spans: tuple[tuple[Any, int], ...]


def label_levels(dims: list[tuple[str, list]]) -> list[LabelLevel]:
    """
    Multi-level labels for nested dimensions given outermost first.

    The outermost level spans the widest groups; the innermost level spans
    one leaf per value.
    """
    levels = []
    repeats = 1
    for i, (name, values) in enumerate(dims):
        width = math.prod(len(v) for _, v in dims[i + 1:])
        spans = tuple(
            (value, width) for _ in range(repeats) for value in values
        )
        levels.append(LabelLevel(name=name, values=tuple(values), spans=spans))
        repeats *= len(values)
    return levels


def _index(levels: list[LabelLevel]) -> pd.Index:
    if not levels:
        return pd.Index([""])
    if len(levels) == 1:
        return pd.Index(list(levels[0].values), name=levels[0].name)
    return pd.MultiIndex.from_product(
        [list(level.values) for level in levels],
        names=[level.name for level in levels]
    )


@dataclass
class RenderedTable:
    """
    A 2D table ready to be handed to a renderer.

    Attributes:
        name (str): Field name, or the joined field names of a stacked table.
        values (np.ndarray): Cell values of shape ``(rows, columns)``,
            rounded to ``digits``.
        row_levels (list[LabelLevel]): Row header levels, outermost first.
        col_levels (list[LabelLevel]): Column header levels, outermost first.
        digits (int): Decimals shown in every cell.
        width_scale (float): Width scaling factor for the renderer.
        meta (dict, optional): Simulation metadata block for the renderer.
    """
    name: str
    values: np.ndarray
    row_levels: list[LabelLevel]
    col_levels: list[LabelLevel]
    digits: int
    width_scale: float = 1.0
    meta: dict | None = field(default=None)

    @property
    def shape(self) -> tuple[int, int]:
        return self.values.shape

    def formatted(self) -> list[list[str]]:
        """Cell strings, padded with trailing zeros to ``digits`` decimals."""
        return [
            [format_value(v, self.digits) for v in row]
            for row in self.values.tolist()
        ]

    def to_frame(self, formatted: bool = False) -> pd.DataFrame:
        """
        The table as a DataFrame with (Multi)Index rows and columns.

        Args:
            formatted (bool, optional): Use the cell strings instead of the
                numeric values. Defaults to False.
        """
        data = self.formatted() if formatted else self.values
        return pd.DataFrame(
            data,
            index=_index(self.row_levels),
            columns=_index(self.col_levels)
        )


class TableStacker:
    """
    Builds 2D tables from the result arrays of a simulation.

    Attributes:
        artifact (SimulationArtifact): The simulation output.
        spec (TableSpec): Assignment of dimensions to rows and columns.
        reducers: One reducer for every field or a field to reducer mapping.
            Defaults to the mean over repetitions. Ignored, with a warning,
            for artifacts that are already aggregated.
        transforms: One function for every field or a field to function
            mapping, applied elementwise after aggregation.
        partial_grid (dict[str, list[int]]): Per parameter, the 1-based
            positions of the grid values to keep. Parameters not listed keep
            every value.
        digits (int): Decimals of every cell.
        width_scale (float): Passed through to the renderer.
        include_meta (bool): Attach the simulation metadata to each table.
    """

    def __init__(
        self,
        artifact: SimulationArtifact,
        spec: TableSpec,
        reducers: Reducer | dict[str, Reducer] | None = None,
        transforms: Callable | dict[str, Callable] | None = None,
        partial_grid: dict[str, list[int]] | None = None,
        digits: int = 4,
        width_scale: float = 1.0,
        include_meta: bool = True,
    ):
        self.artifact = artifact
        self.spec = spec
        self.reducers = reducers
        self.transforms = transforms
        self.partial_grid = partial_grid or {}
        self.digits = digits
        self.width_scale = width_scale
        self.include_meta = include_meta

    def build(self) -> list[RenderedTable]:
        """
        Compute the tables.

        Returns:
            list[RenderedTable]: A single table when the layout stacks fields,
                otherwise one table per field in artifact order.

        Raises:
            DimensionCoverageError: If the rows and columns do not place
                every parameter exactly once, or a reducer or transform
                names an unknown field.
            PartialGridRangeError: If a partial grid position is outside its
                parameter's grid.
        """
        grid = self.artifact.grid
        self.spec.check_coverage(grid.names)
        self._check_field_keys(self.reducers, "reducer")
        self._check_field_keys(self.transforms, "transform")

        positions = self._positions()
        dim_values: dict[Dimension, list] = {
            ParameterDimension(name): [grid[name][i] for i in positions[name]]
            for name in grid.names
        }
        selector = np.ix_(*(positions[name] for name in grid.names))

        summaries = summarize(self.artifact, self.reducers)
        cubes = {
            name: self._transform(name, np.asarray(summary)[selector])
            for name, summary in summaries.items()
        }

        axes = [ParameterDimension(name) for name in grid.names]

        if self.spec.stacks_fields:
            fields = self.artifact.fields
            cube = np.stack([cubes[name] for name in fields], axis=-1)
            dim_values[FIELDS] = fields
            return [self._render(", ".join(fields), cube, axes + [FIELDS], dim_values)]

        return [
            self._render(name, cube, axes, dim_values)
            for name, cube in cubes.items()
        ]

    def _check_field_keys(self, mapping, what: str):
        if not isinstance(mapping, dict):
            return
        unknown = sorted(set(mapping) - set(self.artifact.fields))
        if unknown:
            raise DimensionCoverageError(
                f"{what.capitalize()} given for unknown fields",
                {"fields": unknown, "available": self.artifact.fields}
            )

    def _positions(self) -> dict[str, list[int]]:
        """0-based value positions to keep per parameter."""
        grid = self.artifact.grid
        unknown = sorted(set(self.partial_grid) - set(grid.names))
        if unknown:
            raise PartialGridRangeError(
                "Partial grid names unknown parameters",
                {"parameters": unknown}
            )

        positions = {}
        for name in grid.names:
            size = len(grid[name])
            if name not in self.partial_grid:
                positions[name] = list(range(size))
                continue
            selected = list(self.partial_grid[name])
            if not selected:
                raise PartialGridRangeError(
                    "Partial grid selects no values", {"parameter": name}
                )
            for position in selected:
                if isinstance(position, bool) or not isinstance(position, (int, np.integer)) \
                        or not 1 <= position <= size:
                    raise PartialGridRangeError(
                        "Partial grid position out of range",
                        {"parameter": name, "position": position, "size": size}
                    )
            positions[name] = [int(p) - 1 for p in selected]
        return positions

    def _transform(self, name: str, summary: np.ndarray) -> np.ndarray:
        func = self.transforms
        if isinstance(func, dict):
            func = func.get(name)
        if func is None:
            return summary.astype(float)
        return np.vectorize(func, otypes=[float])(summary)

    def _render(
        self,
        name: str,
        cube: np.ndarray,
        axes: list[Dimension],
        dim_values: dict[Dimension, list],
    ) -> RenderedTable:
        rows = list(reversed(self.spec.rows))  # outermost first
        cols = list(reversed(self.spec.cols))

        arranged = np.transpose(cube, [axes.index(d) for d in rows + cols])
        n_rows = math.prod(len(dim_values[d]) for d in rows)
        n_cols = math.prod(len(dim_values[d]) for d in cols)
        values = np.round(arranged.reshape(n_rows, n_cols), self.digits)

        return RenderedTable(
            name=name,
            values=values,
            row_levels=label_levels([(str(d), dim_values[d]) for d in rows]),
            col_levels=label_levels([(str(d), dim_values[d]) for d in cols]),
            digits=self.digits,
            width_scale=self.width_scale,
            meta=self._meta() if self.include_meta else None,
        )

    def _meta(self) -> dict:
        artifact = self.artifact
        return {
            "function_name": artifact.function_name,
            "nrep": artifact.nrep,
            "grid": artifact.grid.to_dict(),
            "elapsed": artifact.elapsed,
            "timestamp": artifact.timestamp,
        }
