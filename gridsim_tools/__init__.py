"""
# Gridsim Tools

A toolkit for Monte Carlo simulation studies over parameter grids, providing
functionality for:

- **Grid Simulations**: Run a single-trial function repeatedly for every
  combination of a parameter grid, sequentially or on a pool of processes
- **Dependency Discovery**: Static analysis of the trial function to
  provision worker processes
- **Runtime Estimation**: Pre-flight projection of the total runtime
- **Aggregation and Merging**: Summaries over repetitions, combination of
  separate runs of the same simulation
- **Tables**: Stacking of N-dimensional results into 2D tables with
  multi-level row and column labels

## Main Components

- `Trial`: Runs a trial function for one grid cell
- `montecarlo`: Simulation engine, configuration and time estimation
- `config`: Parameter grids and table layouts
- `tables`: Table stacking
- `utils`: Artifacts, aggregation, merging and storage
- `errors`: Exception taxonomy

## Example Usage

```python
import numpy as np
from gridsim_tools.montecarlo import Sim, MonteCarloConfig
from gridsim_tools.config import TableSpec, FIELDS
from gridsim_tools.tables import TableStacker

def trial(n, loc, scale):
    x = np.random.normal(loc, scale, size=n)
    return {"mean": x.mean(), "median": np.median(x)}

config = MonteCarloConfig(nrep=1000, ncpus=4)
grid = {"n": [50, 100, 250], "loc": [0, 1], "scale": [1, 2]}
artifact = Sim(trial, grid, config).run()

spec = TableSpec.from_names(rows=["n", "loc"], cols=[FIELDS, "scale"])
table, = TableStacker(artifact, spec, digits=2).build()
print(table.to_frame(formatted=True))
```
"""

from .errors import *
from .trial import *
