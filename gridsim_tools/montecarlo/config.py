"""Configuration classes for grid simulation settings.

This module provides the configuration class for grid simulations: the number
of repetitions per grid cell, the grid-size ceiling, the execution mode and
the optional pre-flight time estimation. It supports serialization to and
from JSON format for easy persistence and loading of simulation settings.

Typical usage example:

    from gridsim_tools.montecarlo import MonteCarloConfig

    config = MonteCarloConfig.from_json("mc_config.json")
    config.nrep = 2000
    config.to_json("updated_config.json")
"""

from ..config.grid import DEFAULT_MAX_GRID

import json
from dataclasses import dataclass, asdict, field
from typing import Optional


@dataclass
class MonteCarloConfig:
    """Configuration class for grid simulation settings.

    Attributes:
        nrep (int): Number of repetitions of the trial per grid cell.
            Defaults to 100.
        max_grid (int): Largest number of grid cells a simulation may have.
            Raise it explicitly to run bigger grids. Defaults to 1000.
        ncpus (int): Number of worker processes. 0 or 1 runs sequentially
            in the calling process. Defaults to 1.
        estimate_time (bool): Run a reduced pre-flight simulation and log
            the projected total runtime before the full run. Defaults to
            False.
        save_res_test (bool): Keep (and, with ``results_dir`` set, persist)
            the artifact of the pre-flight run. Defaults to False.
        raw (bool): Return per-repetition raw arrays. When False the
            artifact holds mean summaries instead. Defaults to True.
        export_also (list[str]): Extra names (values, functions or module
            names) to provision on the workers regardless of dependency
            analysis. Defaults to an empty list.
        progress (bool): Show a progress bar over grid cells. Defaults to
            True.
        results_dir (str, optional): Directory used to persist pre-flight
            artifacts. Defaults to None.

    Example:
        ```python
        config = MonteCarloConfig(nrep=1000, ncpus=4, estimate_time=True)
        config.to_json("mc_config.json")

        loaded_config = MonteCarloConfig.from_json("mc_config.json")
        ```
    """

    nrep: int = 100
    max_grid: int = DEFAULT_MAX_GRID
    ncpus: int = 1
    estimate_time: bool = False
    save_res_test: bool = False
    raw: bool = True
    export_also: list[str] = field(default_factory=list)
    progress: bool = True
    results_dir: Optional[str] = None

    def __post_init__(self):
        self.validate()

    @property
    def parallel(self) -> bool:
        return self.ncpus > 1

    def validate(self):
        """Check the numeric settings.

        Raises:
            ValueError: If ``nrep`` or ``max_grid`` is not a positive
                integer, or ``ncpus`` is negative.
        """
        for name in ("nrep", "max_grid"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if isinstance(self.ncpus, bool) or not isinstance(self.ncpus, int) or self.ncpus < 0:
            raise ValueError(f"ncpus must be a non-negative integer, got {self.ncpus!r}")

    @classmethod
    def from_json(cls, infile: str):
        """Create a MonteCarloConfig instance from a JSON file.

        Args:
            infile (str): Path to the JSON file containing the configuration
                data. Missing keys take their default values.

        Returns:
            MonteCarloConfig: A new instance initialized with data from the
                file.

        Raises:
            FileNotFoundError: If the specified file does not exist.
            json.JSONDecodeError: If the file contains invalid JSON.
            TypeError: If the file contains unknown configuration keys.
            ValueError: If a numeric setting is out of range.
        """
        with open(infile, "r") as f:
            data = json.load(f)
        return cls(**data)

    def to_json(self, outfile: str):
        """Serialize the configuration to a JSON file.

        Args:
            outfile (str): Path to the output file. The file is opened in
                exclusive creation mode ("+x") and must not exist yet.

        Raises:
            FileExistsError: If the specified file already exists.
        """
        with open(outfile, "+x") as f:
            json.dump(asdict(self), f)
