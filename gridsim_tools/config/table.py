"""
# Table Layout Configuration

Describes how the dimensions of a result array are stacked into the rows and
columns of a 2D table.

Rows and columns are each an ordered list of dimensions, given from the
inside out: the first entry is the innermost (fastest varying) level and the
last entry is the outermost. A dimension is either a parameter of the grid or
the `FIELDS` pseudo-dimension, whose values are the names of the output
fields and which places several fields side by side in one table.

## Example Usage

```python
from gridsim_tools.config.table import TableSpec, FIELDS

# 'n' outer and 'loc' inner on the rows; fields inner and 'scale' outer on
# the columns.
spec = TableSpec.from_names(rows=['loc', 'n'], cols=[FIELDS, 'scale'])
```
"""

from gridsim_tools.errors import DimensionCoverageError

from dataclasses import dataclass
from typing import Iterable, Union


@dataclass(frozen=True)
class ParameterDimension:
    """A table dimension backed by one grid parameter."""
    name: str

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class FieldStackDimension:
    """The pseudo-dimension whose values are the output field names."""
    name: str = "field"

    def __str__(self):
        return self.name


FIELDS = FieldStackDimension()
"""Marker placing the output fields as one extra dimension of a table."""

Dimension = Union[ParameterDimension, FieldStackDimension]


def _as_dimension(item) -> Dimension:
    if isinstance(item, (ParameterDimension, FieldStackDimension)):
        return item
    if isinstance(item, str):
        return ParameterDimension(item)
    raise TypeError(f"Not a table dimension: {item!r}")


@dataclass(frozen=True)
class TableSpec:
    """
    Assignment of dimensions to the rows and columns of a table.

    Attributes:
        rows (tuple[Dimension, ...]): Row dimensions, innermost first.
        cols (tuple[Dimension, ...]): Column dimensions, innermost first.
    """
    rows: tuple[Dimension, ...]
    cols: tuple[Dimension, ...]

    @classmethod
    def from_names(cls, rows: Iterable, cols: Iterable):
        """
        Build a TableSpec from parameter names and the `FIELDS` marker.

        Args:
            rows (Iterable): Row dimensions, innermost first. Strings name
                parameters; `FIELDS` stacks the output fields.
            cols (Iterable): Column dimensions, innermost first.

        Returns:
            TableSpec: The layout.

        Raises:
            DimensionCoverageError: If `FIELDS` is used more than once or a
                parameter is placed twice.
        """
        spec = cls(
            rows=tuple(_as_dimension(r) for r in rows),
            cols=tuple(_as_dimension(c) for c in cols),
        )
        spec._check_unique()
        return spec

    @property
    def stacks_fields(self) -> bool:
        return FIELDS in self.rows or FIELDS in self.cols

    def parameter_names(self) -> list[str]:
        return [
            d.name for d in self.rows + self.cols
            if isinstance(d, ParameterDimension)
        ]

    def _check_unique(self):
        dims = self.rows + self.cols
        if sum(isinstance(d, FieldStackDimension) for d in dims) > 1:
            raise DimensionCoverageError(
                "The field stack dimension may appear only once",
                {"rows": [str(d) for d in self.rows],
                 "cols": [str(d) for d in self.cols]}
            )
        names = self.parameter_names()
        duplicated = sorted({n for n in names if names.count(n) > 1})
        if duplicated:
            raise DimensionCoverageError(
                "Parameter placed more than once in the table",
                {"parameters": duplicated}
            )

    def check_coverage(self, parameters: Iterable[str]):
        """
        Ensure the table places exactly the given parameters.

        Raises:
            DimensionCoverageError: If the row and column parameters differ
                from ``parameters``.
        """
        self._check_unique()
        placed = set(self.parameter_names())
        expected = set(parameters)
        if placed != expected:
            raise DimensionCoverageError(
                "Rows and columns must place every grid parameter exactly once",
                {"missing": sorted(expected - placed),
                 "unknown": sorted(placed - expected)}
            )
