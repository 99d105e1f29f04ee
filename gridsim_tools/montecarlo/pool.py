"""Process pool used to run trial repetitions in parallel.

The pool is provisioned once: each worker process imports the manifest's
packages and binds its values into the trial function's module namespace
before it accepts work. Work is submitted one grid cell at a time, as a batch
of ``nrep`` independent units tagged with their cell coordinates and
repetition index; results are handed back with those tags so the caller can
write them by coordinate regardless of completion order.

Typical usage example:

    manifest = DependencyResolver().resolve(trial)

    with WorkerPool(workers=4, manifest=manifest) as pool:
        for cell in grid.expand():
            for coords, rep, record in pool.map_batch(trial, cell, nrep=100):
                ...
"""

from gridsim_tools.config.grid import GridCell
from gridsim_tools.errors import GridSimError, WorkerExecutionError
from gridsim_tools.trial import Trial, TrialRecord
from .dependencies import ProvisioningManifest

import importlib
import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from concurrent.futures.process import BrokenProcessPool
from typing import Callable


def _provision(manifest: ProvisioningManifest):
    """Worker initializer: apply the manifest to this process."""
    for package in sorted(manifest.packages):
        importlib.import_module(package)

    try:
        module = importlib.import_module(manifest.target_module)
    except ImportError:
        module = importlib.import_module("__main__")
    namespace = module.__dict__

    for alias, module_name in manifest.imports.items():
        namespace.setdefault(alias, importlib.import_module(module_name))
    for name, value in manifest.values.items():
        namespace.setdefault(name, value)


def _run_unit(func: Callable, cell: GridCell, rep: int) -> tuple[tuple[int, ...], int, TrialRecord]:
    return cell.coords, rep, Trial.run(func, cell)


class WorkerPool:
    """Fixed-size pool of worker processes.

    Attributes:
        workers (int): Number of worker processes.
        manifest (ProvisioningManifest): Applied once in every worker.
    """

    def __init__(self, workers: int, manifest: ProvisioningManifest):
        self.workers = workers
        self.manifest = manifest
        self._executor = None

    def __enter__(self):
        logging.info(f"Starting worker pool with {self.workers} processes.")
        self._executor = ProcessPoolExecutor(
            max_workers=self.workers,
            initializer=_provision,
            initargs=(self.manifest,),
        )
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(cancel=exc_type is not None)
        return False

    def shutdown(self, cancel: bool = False):
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=cancel)
            self._executor = None

    def map_batch(
        self,
        func: Callable,
        cell: GridCell,
        nrep: int
    ) -> list[tuple[tuple[int, ...], int, TrialRecord]]:
        """Run every repetition of one grid cell and wait for all of them.

        Args:
            func (Callable): The trial function. Must be picklable, i.e.
                defined at module level.
            cell (GridCell): The grid cell to run.
            nrep (int): Number of repetitions.

        Returns:
            list[tuple]: ``(coords, rep, record)`` per repetition, in
                completion order.

        Raises:
            WorkerExecutionError: If any unit raised or a worker crashed.
            InvalidReturnShapeError: Re-raised unchanged from the worker.
        """
        if self._executor is None:
            raise RuntimeError("WorkerPool must be entered before submitting work")

        futures = {
            self._executor.submit(_run_unit, func, cell, rep): rep
            for rep in range(nrep)
        }

        results = []
        for future in as_completed(futures):
            rep = futures[future]
            try:
                results.append(future.result())
            except GridSimError:
                raise
            except BrokenProcessPool as e:
                logging.error(f"Worker pool broke while running {cell.params} (rep {rep}).")
                raise WorkerExecutionError(
                    "A worker process crashed",
                    {"params": cell.params, "rep": rep}
                ) from e
            except Exception as e:
                logging.error(f"Work unit for {cell.params} (rep {rep}) failed: {e}")
                raise WorkerExecutionError(
                    f"Trial raised {type(e).__name__}: {e}",
                    {"params": cell.params, "rep": rep}
                ) from e

        return results
