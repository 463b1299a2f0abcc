from __future__ import annotations
from dataclasses import dataclass

import numba as nb
import numpy as np

from errors import MultisetMismatchError


@dataclass(frozen=True, slots=True)
class Buckets:
    """
    Per-label FIFO position queues for both sequences, stored CSR-style.

    The queue of label ``k`` on a side is ``queue[starts[k]:starts[k + 1]]``,
    in increasing position order.
    """
    s1_starts: np.ndarray
    s1_queue: np.ndarray
    s2_starts: np.ndarray
    s2_queue: np.ndarray

    def __len__(self) -> int:
        return self.s1_starts.size - 1

    def queue(self, label: int, side: int) -> np.ndarray:
        starts, queue = (self.s1_starts, self.s1_queue) if side == 0 else (self.s2_starts, self.s2_queue)
        return queue[starts[label]:starts[label + 1]]


@nb.njit(cache=True, fastmath=True)
def _bucket_starts(labels, num_labels):
    starts = np.zeros(num_labels + 1, np.int64)
    for k in labels:
        starts[k + 1] += 1
    for k in range(num_labels):
        starts[k + 1] += starts[k]
    return starts


@nb.njit(cache=True, fastmath=True)
def _enqueue(labels, starts):
    tails = starts[:-1].copy()
    queue = np.empty(labels.size, np.int64)
    for i in range(labels.size):
        k = labels[i]
        queue[tails[k]] = i
        tails[k] += 1
    return queue


@nb.njit(cache=True, fastmath=True)
def _pair(s1_starts, s1_queue, s2_starts, s2_queue, n):
    mapping = np.empty(n, np.int64)
    for k in range(s1_starts.size - 1):
        i = s1_starts[k]
        j = s2_starts[k]
        i_stop = s1_starts[k + 1]
        j_stop = s2_starts[k + 1]
        while i < i_stop:
            if j == j_stop:
                return mapping, k
            mapping[s1_queue[i]] = s2_queue[j]
            i += 1
            j += 1
        if j != j_stop:
            return mapping, k
    return mapping, -1


def bucket_sort(relabeling: np.ndarray, num_labels: int) -> Buckets:
    """Group positions by label, one queue per label and side, preserving position order."""
    s1_labels = np.ascontiguousarray(relabeling[:, 0], dtype=np.int64)
    s2_labels = np.ascontiguousarray(relabeling[:, 1], dtype=np.int64)
    s1_starts = _bucket_starts(s1_labels, num_labels)
    s2_starts = _bucket_starts(s2_labels, num_labels)
    return Buckets(s1_starts, _enqueue(s1_labels, s1_starts), s2_starts, _enqueue(s2_labels, s2_starts))


def map_elements(buckets: Buckets, n: int) -> np.ndarray:
    """
    Pair the i-th occurrence of each label in s1 with its i-th occurrence in s2.

    Returns ``mapping`` with ``mapping[i1] = i2`` for every paired position. A label
    occurring a different number of times on each side raises ``MultisetMismatchError``.
    """
    mapping, label = _pair(buckets.s1_starts, buckets.s1_queue, buckets.s2_starts, buckets.s2_queue, n)
    if label >= 0:
        s1_count = buckets.s1_starts[label + 1] - buckets.s1_starts[label]
        s2_count = buckets.s2_starts[label + 1] - buckets.s2_starts[label]
        raise MultisetMismatchError(
            f"Sequences must contain same elements: label {label} occurs {s1_count} times in s1 "
            f"and {s2_count} times in s2."
        )
    return mapping
