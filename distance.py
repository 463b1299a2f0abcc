from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Sequence, Union

import numba as nb
import numpy as np

from errors import SequenceLengthError, SequenceTypeError
from mapping import bucket_sort, map_elements
from relabel import RelabelByHashing, RelabelBySorting, Relabeler

logger = logging.getLogger(__name__)


@nb.njit(cache=True, fastmath=True)
def count_inversions(perm):
    n = perm.size
    scratch = np.empty_like(perm)
    inv_count = 0
    width = 1
    while width < n:
        for lo in range(0, n - width, 2 * width):
            mid = lo + width
            hi = min(lo + 2 * width, n)
            i = lo
            j = mid
            k = lo
            while i < mid and j < hi:
                if perm[i] <= perm[j]:
                    scratch[k] = perm[i]
                    i += 1
                else:
                    inv_count += mid - i
                    scratch[k] = perm[j]
                    j += 1
                k += 1
            while i < mid:
                scratch[k] = perm[i]
                i += 1
                k += 1
            while j < hi:
                scratch[k] = perm[j]
                j += 1
                k += 1
            perm[lo:hi] = scratch[lo:hi]
        width <<= 1
    return inv_count


class Relabeling(Enum):
    """How sequence elements are mapped to dense labels."""
    HASHING = "hashing"
    SORTING = "sorting"


_RELABELERS = {
    Relabeling.HASHING: RelabelByHashing,
    Relabeling.SORTING: RelabelBySorting,
}


def _check_sequence(s: Any, name: str) -> None:
    if s is None:
        raise SequenceTypeError(f"{name} must not be None")
    if isinstance(s, np.ndarray):
        if s.ndim != 1:
            raise SequenceTypeError(f"{name} must be one-dimensional, got shape {s.shape}")
    elif not hasattr(s, "__len__"):
        raise SequenceTypeError(f"{name} must be a sized sequence, got {type(s).__name__}")


class KendallTauSequenceDistance:
    """
    Kendall tau sequence distance: the minimum number of adjacent swaps that turn
    ``s1`` into ``s2``, where the sequences may contain duplicates.

    Elements are relabeled to dense integers, positions are bucketed by label and
    paired in order of occurrence, and the inversions of the resulting index
    permutation are counted. O(n log n) for primitive element types.

    Args:
        relabeling: ``Relabeling.HASHING`` (default) or ``Relabeling.SORTING``, or
            either member's name. Fixed for the lifetime of the instance.

    Examples:
        >>> KendallTauSequenceDistance().distance("abcdaabb", "dcbababa")
        9
    """
    __slots__ = ("_relabeling", "_relabeler")

    def __init__(self, relabeling: Union[Relabeling, str] = Relabeling.HASHING):
        if not isinstance(relabeling, Relabeling):
            try:
                relabeling = Relabeling[str(relabeling).upper()]
            except KeyError:
                raise ValueError(f"Invalid relabeling: {relabeling}") from None
        self._relabeling = relabeling
        self._relabeler: Relabeler = _RELABELERS[relabeling]()

    @property
    def relabeling(self) -> Relabeling:
        return self._relabeling

    def __repr__(self) -> str:
        return f"{type(self).__name__}(relabeling={self._relabeling.name})"

    def distance(self, s1: Sequence[Any], s2: Sequence[Any]) -> int:
        _check_sequence(s1, "s1")
        _check_sequence(s2, "s2")
        n = len(s1)
        if n != len(s2):
            raise SequenceLengthError(
                f"Sequences must be same length for Kendall Tau distance: {n} != {len(s2)}"
            )
        if n == 0:
            return 0
        relabeling, num_labels = self._relabeler.relabel(s1, s2)
        buckets = bucket_sort(relabeling, num_labels)
        mapping = map_elements(buckets, n)
        logger.debug("Kendall tau distance over %d elements with %d labels (%s)",
                     n, num_labels, self._relabeling.name)
        return int(count_inversions(mapping))

    def distancef(self, s1: Sequence[Any], s2: Sequence[Any]) -> float:
        return float(self.distance(s1, s2))

    __call__ = distance
