"""
# Trial Interface

This module wraps the user supplied single-trial function. A trial function
takes one value per grid parameter as keyword arguments and returns a named
collection of scalars (a ``dict`` or a namedtuple), for example:

```python
def trial(n, loc):
    x = rng.normal(loc, 1, size=n)
    return {"decision": bool(abs(x.mean()) > 1.96 / n ** 0.5)}
```

## Classes

- `FieldKind`: Kind of a result field (bool, number or string)
- `TrialRecord`: Normalized named-scalar result of one trial
- `Trial`: Runs a trial function for one grid cell

## Example Usage

```python
from gridsim_tools import Trial
from gridsim_tools.config.grid import ParameterGrid

grid = ParameterGrid.from_dict({'n': [50, 100], 'loc': [0, 1]})
cell = next(grid.expand())

record = Trial.run(trial, cell)
record.fields    # {'decision': False}
record.schema()  # (('decision', FieldKind.BOOL),)
```
"""

from gridsim_tools.config.grid import GridCell, is_scalar
from gridsim_tools.errors import InvalidReturnShapeError, InconsistentReturnShapeError

import numpy as np
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class FieldKind(Enum):
    """
    Kind of value held by a result field.

    Integers and floats share `NUMBER` so that a trial may return ``0`` in
    one repetition and ``0.5`` in another; both are stored as float64.
    """
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"

    @classmethod
    def of(cls, value: Any):
        if isinstance(value, (bool, np.bool_)):
            return cls.BOOL
        if isinstance(value, (int, float, np.number)):
            return cls.NUMBER
        if isinstance(value, (str, np.str_)):
            return cls.STRING
        return None

    @property
    def dtype(self):
        """Numpy dtype of the result array for this kind."""
        match self:
            case FieldKind.BOOL:
                return np.bool_
            case FieldKind.NUMBER:
                return np.float64
            case FieldKind.STRING:
                return object


Schema = tuple[tuple[str, FieldKind], ...]
"""Ordered field names and kinds of a trial record."""


@dataclass(frozen=True)
class TrialRecord:
    """
    Named-scalar result of one trial.

    Attributes:
        fields (dict[str, Any]): Field name to scalar value, in the order
            the trial function returned them.
    """
    fields: dict[str, Any]

    def schema(self) -> Schema:
        return tuple((name, FieldKind.of(v)) for name, v in self.fields.items())

    def check_schema(self, expected: Schema, cell: GridCell, rep: int):
        """
        Compare this record against the schema of the first record of a run.

        Field order is not significant; results are written by name.

        Raises:
            InconsistentReturnShapeError: If the set of field names or the
                kind of any field differs from ``expected``.
        """
        kinds = dict(self.schema())
        expected_kinds = dict(expected)
        if kinds == expected_kinds:
            return

        if set(kinds) != set(expected_kinds):
            raise InconsistentReturnShapeError(
                "Trial returned different fields than its first invocation",
                {"params": cell.params, "rep": rep,
                 "fields": sorted(kinds), "expected": sorted(expected_kinds)}
            )
        for name, kind in kinds.items():
            if kind != expected_kinds[name]:
                raise InconsistentReturnShapeError(
                    "Trial field changed type between invocations",
                    {"params": cell.params, "rep": rep, "field": name,
                     "kind": kind.value, "expected": expected_kinds[name].value}
                )


class Trial:
    """
    Runner for a single-trial function.

    The trial function is called once per grid cell and repetition with the
    cell's parameters bound as keyword arguments. Every call is independent,
    which is what allows repetitions to be dispatched to separate processes.
    """

    @staticmethod
    def run(func: Callable, cell: GridCell) -> TrialRecord:
        """
        Execute the trial function once for a grid cell.

        Args:
            func (Callable): The trial function.
            cell (GridCell): Parameter values bound as keyword arguments.

        Returns:
            TrialRecord: The normalized result.

        Raises:
            InvalidReturnShapeError: If the function does not return a named
                collection of scalars.
        """
        out = func(**cell.params)
        return Trial.normalize(out, cell)

    @staticmethod
    def normalize(out: Any, cell: GridCell) -> TrialRecord:
        """Turn a trial function's return value into a TrialRecord."""
        if hasattr(out, "_asdict"):  # namedtuple
            out = out._asdict()

        if not isinstance(out, Mapping) or len(out) == 0:
            raise InvalidReturnShapeError(
                "Trial function must return a non-empty mapping of field names to scalars",
                {"params": cell.params, "returned": type(out).__name__}
            )

        fields = {}
        for name, value in out.items():
            if not isinstance(name, str):
                raise InvalidReturnShapeError(
                    "Trial field names must be strings",
                    {"params": cell.params, "field": name}
                )
            if not is_scalar(value) or FieldKind.of(value) is None:
                raise InvalidReturnShapeError(
                    "Trial field values must be scalars",
                    {"params": cell.params, "field": name,
                     "returned": type(value).__name__}
                )
            fields[name] = value

        return TrialRecord(fields=fields)
