"""
# Artifact Storage

Saves simulation artifacts to a directory and finds them again by name.

Each artifact is one ``.npz`` file holding its result arrays plus a JSON
metadata entry. Nothing is pickled, so string fields are stored as fixed
width unicode arrays and restored to object arrays on load.

## Example Usage

```python
from gridsim_tools.utils.store import ArtifactStore

store = ArtifactStore('/results')
store.save('power_run1', artifact)

store.find('power')          # ['power_run1', 'power_run2']
artifact = store.load('power_run1')
```
"""

from .results import SimulationArtifact

import json
import os
import numpy as np


META_KEY = "__meta__"
RESULT_PREFIX = "result."
SUFFIX = ".npz"


class ArtifactStore:
    """
    Directory of saved simulation artifacts.

    Attributes:
        directory (str): Directory holding the ``.npz`` files. Created on
            first save.
    """

    def __init__(self, directory: str):
        self.directory = directory

    def path(self, name: str) -> str:
        return os.path.join(self.directory, f"{name}{SUFFIX}")

    def save(self, name: str, artifact: SimulationArtifact, overwrite: bool = False) -> str:
        """
        Save an artifact under ``name``.

        Args:
            name (str): File name without extension.
            artifact (SimulationArtifact): The artifact to save.
            overwrite (bool, optional): Replace an existing file. Defaults
                to False.

        Returns:
            str: Path of the written file.

        Raises:
            FileExistsError: If the file exists and ``overwrite`` is False.
        """
        os.makedirs(self.directory, exist_ok=True)
        path = self.path(name)
        if os.path.exists(path) and not overwrite:
            raise FileExistsError(f"Artifact already exists: {path}")

        arrays = {}
        for field, array in artifact.results.items():
            if array.dtype == object:
                array = array.astype(str)
            arrays[f"{RESULT_PREFIX}{field}"] = array

        meta = json.dumps(artifact.metadata())
        with open(path, "wb") as f:
            np.savez(f, **arrays, **{META_KEY: np.array(meta)})
        return path

    def load(self, name: str) -> SimulationArtifact:
        """
        Load the artifact saved under ``name``.

        Raises:
            FileNotFoundError: If no such artifact exists.
        """
        with np.load(self.path(name), allow_pickle=False) as data:
            meta = json.loads(str(data[META_KEY]))
            results = {}
            for field in meta["fields"]:
                array = data[f"{RESULT_PREFIX}{field}"]
                if array.dtype.kind == "U":
                    array = array.astype(object)
                results[field] = array
        return SimulationArtifact.from_metadata(meta, results)

    def find(self, substring: str) -> list[str]:
        """Names of saved artifacts containing ``substring``, sorted."""
        if not os.path.isdir(self.directory):
            return []
        return sorted(
            entry[:-len(SUFFIX)] for entry in os.listdir(self.directory)
            if entry.endswith(SUFFIX) and substring in entry[:-len(SUFFIX)]
        )
