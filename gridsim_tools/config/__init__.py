"""
# Configuration Management

This module provides configuration classes for parameter grids and table
layouts used throughout the gridsim_tools package.

## Components

- **ParameterGrid**: Ordered parameter grid and its expansion into cells
- **TableSpec**: Assignment of grid dimensions to table rows and columns

## Example Usage

```python
from gridsim_tools.config import ParameterGrid, TableSpec, FIELDS

grid = ParameterGrid.from_dict({'n': [50, 100], 'loc': [0, 1]})
spec = TableSpec.from_names(rows=['n'], cols=[FIELDS, 'loc'])
```
"""

from .grid import *
from .table import *
