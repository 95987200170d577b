"""Parallel processing of independent work items with joblib."""

import logging
import os
from collections.abc import Callable
from typing import Any

from joblib import Parallel, delayed
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from .utils.logging import console

logger = logging.getLogger(__name__)


class ParallelProcessor:
    """
    Map a function over items with a joblib backend.

    Results are returned in input order. Work items must not share mutable
    state: each one builds its own allele arena and file handles.
    """

    def __init__(self, n_jobs: int = -1, backend: str = "loky", verbose: int = 0):
        """
        Args:
            n_jobs: Number of parallel jobs (-1 for all CPUs)
            backend: joblib backend ('loky', 'threading', 'multiprocessing')
            verbose: joblib verbosity level
        """
        self.n_jobs = n_jobs if n_jobs > 0 else (os.cpu_count() or 1)
        self.backend = backend
        self.verbose = verbose

    def map(
        self,
        func: Callable,
        items: list[Any],
        description: str = "Processing",
        show_progress: bool = True,
    ) -> list[Any]:
        logger.debug("Running %d items on %d %s workers", len(items), self.n_jobs, self.backend)
        parallel = Parallel(
            n_jobs=self.n_jobs,
            backend=self.backend,
            verbose=self.verbose,
            return_as="generator",
        )
        jobs = (delayed(func)(item) for item in items)

        if not show_progress:
            return list(parallel(jobs))

        results = []
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task(f"[cyan]{description}...", total=len(items))
            for result in parallel(jobs):
                results.append(result)
                progress.update(task, advance=1)
        return results
