# core/params.py - Cross-correlation analysis parameters
"""
Parameter bundle for the shuffle-corrected cross-correlation analysis.

Inclusion predicates are restricted to a closed set of comparison operators.
Defaults follow the parameter set used for cell assembly analyses on the
linear track data (20 ms spike count window, 100 shuffles).
"""

import warnings
import numpy as np
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union


class ComparisonOp(Enum):
    """Comparison operators allowed in time-window predicates."""

    EQ = '=='
    NE = '!='
    GE = '>='
    LE = '<='
    GT = '>'
    LT = '<'
    ISMEMBER = 'ismember'

    @classmethod
    def parse(cls, token: Union[str, 'ComparisonOp']) -> 'ComparisonOp':
        """Resolve an operator token ('>=', 'ismember', 'in', ...)."""
        if isinstance(token, cls):
            return token
        aliases = {'~=': '!=', 'in': 'ismember', 'eq': '==', 'ne': '!=',
                   'ge': '>=', 'le': '<=', 'gt': '>', 'lt': '<'}
        if not isinstance(token, str):
            raise ValueError(f"Operator must be a string, got {type(token).__name__}")
        key = token.strip().lower()
        key = aliases.get(key, key)
        for op in cls:
            if op.value == key:
                return op
        raise ValueError(f"Unknown comparison operator '{token}'. "
                         f"Use one of {[op.value for op in cls]}")

    def compare(self, values: np.ndarray, reference: Any) -> np.ndarray:
        values = np.asarray(values)
        if self is ComparisonOp.ISMEMBER:
            return np.isin(values, np.atleast_1d(reference))
        # NaN compares False, so missing samples are excluded
        with np.errstate(invalid='ignore'):
            if self is ComparisonOp.EQ:
                return values == reference
            if self is ComparisonOp.NE:
                return values != reference
            if self is ComparisonOp.GE:
                return values >= reference
            if self is ComparisonOp.LE:
                return values <= reference
            if self is ComparisonOp.GT:
                return values > reference
            return values < reference


@dataclass(frozen=True)
class Predicate:
    """Inclusion condition `nav[column] <op> value`."""

    column: str
    op: ComparisonOp
    value: Any

    def apply(self, values: np.ndarray) -> np.ndarray:
        return np.asarray(self.op.compare(values, self.value), dtype=bool)


SubsetSpec = Union[Sequence[Any], Mapping[str, Tuple[Any, Any]]]


def coerce_predicates(subset: Optional[SubsetSpec]) -> List[Predicate]:
    """
    Normalize inclusion predicates.

    Accepts a list of Predicate objects or (column, op, value) tuples, or a
    mapping {column: (op, value)}. Malformed entries are reported with a
    warning and dropped.

    Args:
        subset: Predicate specification

    Returns:
        List of Predicate objects
    """
    if subset is None:
        return []

    if isinstance(subset, Mapping):
        entries = [(name, *spec) if isinstance(spec, (tuple, list)) else (name, spec)
                   for name, spec in subset.items()]
    else:
        entries = list(subset)

    predicates = []
    for entry in entries:
        if isinstance(entry, Predicate):
            predicates.append(entry)
            continue
        try:
            column, op, value = entry
            predicates.append(Predicate(str(column), ComparisonOp.parse(op), value))
        except (TypeError, ValueError) as e:
            warnings.warn(f"Ignoring malformed subset entry {entry!r}: {e}", UserWarning)

    return predicates


@dataclass
class CrossParams:
    """
    Parameters of the cross-correlation analysis.

    Attributes:
        subset: Inclusion predicates over behavior columns
        cell_idx: Candidate cells (None, boolean mask or index sequence)
        nspk_th: Minimal number of spikes in the time window to keep a cell
        n_shuffle: Number of shuffle controls
        variable_names: Behavior columns whose bins constrain the shuffle
        bin_edges: Bin edges for each entry of variable_names
        sample_rate: Sampling rate (Hz); derived from the timeline if None
        timewin: Spike count window (s)
        lag: Maximal lag of the cross-correlograms (s)
        seed: Base seed of the shuffle controls
        time_key: Name of the timestamp column in the behavior table
        n_jobs: Number of joblib workers
        backend: joblib backend (None for joblib's default)
        verbose: Print progress
        tidx: Resolved time mask (filled in on output)
    """

    subset: List[Predicate] = field(default_factory=list)
    cell_idx: Optional[Sequence[Any]] = None
    nspk_th: float = 0
    n_shuffle: int = 100
    variable_names: List[str] = field(default_factory=list)
    bin_edges: List[Sequence[float]] = field(default_factory=list)
    sample_rate: Optional[float] = None
    timewin: float = 0.02
    lag: float = 0.1
    seed: int = 0
    time_key: str = 'sample_times'
    n_jobs: int = 1
    backend: Optional[str] = None
    verbose: bool = False
    tidx: Optional[np.ndarray] = None

    def __post_init__(self):
        self.subset = coerce_predicates(self.subset)
        self.variable_names = list(self.variable_names)
        self.bin_edges = [np.asarray(edges, dtype=float) for edges in self.bin_edges]

    def validate(self):
        """Reject parameters that would invalidate every downstream tensor."""
        if int(self.n_shuffle) != self.n_shuffle or self.n_shuffle <= 0:
            raise ValueError(f"n_shuffle must be a positive integer, got {self.n_shuffle}")
        if not self.timewin > 0:
            raise ValueError(f"timewin must be positive, got {self.timewin}")
        if not self.lag >= 0:
            raise ValueError(f"lag must be non-negative, got {self.lag}")
        if self.sample_rate is not None and not self.sample_rate > 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if len(self.variable_names) != len(self.bin_edges):
            raise ValueError(f"Got {len(self.variable_names)} variable names but "
                             f"{len(self.bin_edges)} bin edge sequences")
        for name, edges in zip(self.variable_names, self.bin_edges):
            if edges.ndim != 1 or edges.size < 2:
                raise ValueError(f"Bin edges of '{name}' need at least two values")
            if np.any(np.isnan(edges)) or not np.all(np.diff(edges) > 0):
                raise ValueError(f"Bin edges of '{name}' must be strictly increasing")

