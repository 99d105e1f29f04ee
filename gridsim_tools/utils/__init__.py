"""
# Utilities

This module provides the result containers and the operations on them.

## Components

- **results**: `SimulationArtifact` and `SummaryResults`
- **aggregate**: Reducers over the repetition axis
- **merge**: Combination of artifacts from separate runs
- **store**: Saving and loading artifacts

## Example Usage

```python
from gridsim_tools.utils.aggregate import summarize
from gridsim_tools.utils.merge import merge

combined = merge(run1, run2)
summary = summarize(combined, reducers={'estimate': 'median'})
summary.to_frame(combined.grid)
```
"""
