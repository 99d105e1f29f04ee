"""
# Errors

Exception taxonomy for grid simulations, aggregation, tabling and merging.

Every error carries an optional ``ctx`` mapping with the values needed to
reproduce the failing case (parameter values, repetition index, field name).
All of them are fatal to the operation that raised them; nothing is retried.

## Example Usage

```python
from gridsim_tools.errors import GridSimError, GridTooLargeError

try:
    sim.run()
except GridTooLargeError as e:
    print(e.ctx["size"])
except GridSimError as e:
    print(f"Simulation failed: {e}")
```
"""

from typing import Any, Mapping


class GridSimError(Exception):
    """Base class for every error raised by gridsim_tools.

    Attributes:
        message (str): Human readable description of the failure.
        ctx (dict): Reproduction context, rendered into ``str(error)``.
    """

    def __init__(self, message: str, ctx: Mapping[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.ctx = dict(ctx) if ctx else {}

    def __reduce__(self):
        return (self.__class__, (self.message, self.ctx))

    def __str__(self) -> str:
        if not self.ctx:
            return self.message
        parts = ", ".join(f"{k}={v!r}" for k, v in self.ctx.items())
        return f"{self.message} ({parts})"


class InvalidGridError(GridSimError):
    """Malformed parameter grid, or grid names not matching the trial function."""


class GridTooLargeError(GridSimError):
    """Grid size exceeds the configured ceiling."""


class InvalidReturnShapeError(GridSimError):
    """Trial function returned something other than named scalars."""


class InconsistentReturnShapeError(GridSimError):
    """Trial function returned a schema different from its first invocation."""


class ReducerShapeError(GridSimError):
    """Reducer did not return a scalar for a repetition slice."""


class DimensionCoverageError(GridSimError):
    """Table rows and columns do not place every parameter exactly once."""


class PartialGridRangeError(GridSimError):
    """Partial grid selection refers to a position outside a parameter grid."""


class IncompatibleArtifactsError(GridSimError):
    """Artifacts cannot be merged (grid, fields, function or shape differ)."""


class WorkerExecutionError(GridSimError):
    """A work unit raised or crashed inside the worker pool."""


__all__ = [
    "GridSimError",
    "InvalidGridError",
    "GridTooLargeError",
    "InvalidReturnShapeError",
    "InconsistentReturnShapeError",
    "ReducerShapeError",
    "DimensionCoverageError",
    "PartialGridRangeError",
    "IncompatibleArtifactsError",
    "WorkerExecutionError",
]
