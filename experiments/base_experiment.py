# experiments/base_experiment.py
"""
Base experiment class with shared functionality across analyses:
progress reporting and fan-out of independent jobs over joblib workers.
"""

from typing import Any, Callable, Iterable, List, Optional, Tuple
from abc import ABC, abstractmethod
from joblib import Parallel, delayed


class BaseExperiment(ABC):
    """Base class for all experiments with common utilities."""

    def __init__(self, n_jobs: int = 1, backend: Optional[str] = None,
                 verbose: bool = False):
        """
        Initialize base experiment.

        Args:
            n_jobs: Number of joblib workers (1 runs jobs serially)
            backend: joblib backend, None for joblib's default
            verbose: Print progress messages
        """
        self.n_jobs = n_jobs
        self.backend = backend
        self.verbose = verbose

    def log(self, message: str):
        """Print a progress message in verbose mode."""
        if self.verbose:
            print(message)

    def run_parallel(self, func: Callable[..., Any],
                     jobs: Iterable[Tuple[Any, ...]]) -> List[Any]:
        """
        Evaluate func on every argument tuple, in job order.

        Jobs must not share mutable state: each one returns its own result
        and the caller writes it to its own output slot.
        """
        if self.n_jobs == 1:
            return [func(*args) for args in jobs]
        return Parallel(n_jobs=self.n_jobs, backend=self.backend)(
            delayed(func)(*args) for args in jobs
        )

    @abstractmethod
    def run(self, *args, **kwargs) -> Any:
        """
        Run the full analysis (experiment-specific).

        Must be implemented by subclasses.
        """
        pass
