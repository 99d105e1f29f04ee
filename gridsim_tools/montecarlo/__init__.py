"""
# Grid Simulations

This module provides functionality for running Monte Carlo simulations over
parameter grids.

## Components

- `Sim`: Simulation engine (sequential or parallel)
- `MonteCarloConfig`: Configuration for grid simulations
- `TimeEstimator`: Pre-flight runtime projection
- `DependencyResolver`: Discovers what worker processes need
- `WorkerPool`: Process pool running one grid cell's repetitions at a time

## Example Usage

```python
from gridsim_tools.montecarlo import Sim, MonteCarloConfig

config = MonteCarloConfig.from_json('mc_config.json')

sim = Sim(trial, {'n': [50, 100], 'loc': [0, 1]}, config)
artifact = sim.run()
```
"""

from .sim import *
from .config import *
from .estimate import *
from .dependencies import *
from .pool import *
