"""
Relabeling of a sequence pair onto dense integer labels.

Both relabelers return ``(relabeling, num_labels)`` where ``relabeling`` is an
``(n, 2)`` int64 array holding the label of ``s1[i]`` and ``s2[i]`` in row ``i``.
Labels are derived from ``s1`` alone; an element of ``s2`` with no label in
``s1`` raises ``MultisetMismatchError``.
"""
from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from bisect import bisect_left
from enum import IntEnum
from typing import Any, Sequence, Tuple

import numpy as np

from errors import MultisetMismatchError
from hashtable import PrimitiveHashTable, as_key_bits

logger = logging.getLogger(__name__)

_NUMERIC_KINDS = frozenset("biuf")
_MISSING_MESSAGE = "Sequences must contain same elements: s2 contains at least one element not in s1."
_NAN = float("nan")


# Classes --------------------------------------------------------------------------------------------------------------
class SequenceKind(IntEnum):
    """Which relabeling path a sequence pair takes."""
    PRIMITIVE = 0
    BOOLEAN = 1
    OBJECT = 2


class Relabeler(ABC):
    """Shared dispatch for the relabeling strategies."""
    __slots__ = ()

    def relabel(self, s1: Sequence[Any], s2: Sequence[Any]) -> Tuple[np.ndarray, int]:
        kind, a1, a2 = classify(s1, s2)
        if kind is SequenceKind.BOOLEAN:
            return relabel_booleans(a1, a2)
        if kind is SequenceKind.PRIMITIVE:
            labels1, labels2, num_labels = self._relabel_primitive(a1, a2)
        else:
            labels1, labels2, num_labels = self._relabel_objects(a1, a2)
        if labels2.size and labels2.min() < 0:
            raise MultisetMismatchError(_MISSING_MESSAGE)
        return np.column_stack((labels1, labels2)).astype(np.int64, copy=False), num_labels

    @abstractmethod
    def _relabel_primitive(self, a1: np.ndarray, a2: np.ndarray) -> Tuple[np.ndarray, np.ndarray, int]: ...

    @abstractmethod
    def _relabel_objects(self, a1: list, a2: list) -> Tuple[np.ndarray, np.ndarray, int]: ...


class RelabelByHashing(Relabeler):
    """Labels in order of first occurrence in ``s1``."""
    __slots__ = ()

    def _relabel_primitive(self, a1, a2):
        return _hash_primitive(a1, a2)

    def _relabel_objects(self, a1, a2):
        return _hash_objects(a1, a2)


class RelabelBySorting(Relabeler):
    """
    Labels in ascending value order of ``s1``, resolved by binary search.

    Object sequences whose elements cannot be ordered are relabeled by hashing.
    """
    __slots__ = ()

    def _relabel_primitive(self, a1, a2):
        return _sort_primitive(a1, a2)

    def _relabel_objects(self, a1, a2):
        result = _sort_objects(a1, a2)
        if result is None:
            return _hash_objects(a1, a2)
        return result


# Functions ------------------------------------------------------------------------------------------------------------
def classify(s1, s2) -> Tuple[SequenceKind, Any, Any]:
    """
    Pick the relabeling path for a pair and convert both sides for it.

    Numeric and boolean arrays, ``str`` (code points) and ``bytes`` take the
    primitive paths; anything else is compared as a list of Python objects.
    """
    if isinstance(s1, np.ndarray) and isinstance(s2, np.ndarray):
        k1, k2 = s1.dtype.kind, s2.dtype.kind
        if k1 == "b" and k2 == "b":
            return SequenceKind.BOOLEAN, s1, s2
        if k1 in _NUMERIC_KINDS and k2 in _NUMERIC_KINDS:
            dtype = np.result_type(s1.dtype, s2.dtype)
            if dtype.kind == "f" and k1 in "iu" and k2 in "iu":
                # int64 with uint64 promotes to float64, which is inexact above 2**53
                return SequenceKind.OBJECT, _as_list(s1), _as_list(s2)
            return SequenceKind.PRIMITIVE, s1.astype(dtype, copy=False), s2.astype(dtype, copy=False)
    elif isinstance(s1, str) and isinstance(s2, str):
        return SequenceKind.PRIMITIVE, _code_points(s1), _code_points(s2)
    elif isinstance(s1, (bytes, bytearray)) and isinstance(s2, (bytes, bytearray)):
        return SequenceKind.PRIMITIVE, np.frombuffer(s1, np.uint8), np.frombuffer(s2, np.uint8)
    return SequenceKind.OBJECT, _as_list(s1), _as_list(s2)


def relabel_booleans(a1: np.ndarray, a2: np.ndarray) -> Tuple[np.ndarray, int]:
    n = a1.size
    trues = int(np.count_nonzero(a1))
    if trues != int(np.count_nonzero(a2)):
        raise MultisetMismatchError(
            f"Sequences must contain same elements: s1 has {trues} True values, "
            f"s2 has {int(np.count_nonzero(a2))}."
        )
    relabeling = np.zeros((n, 2), np.int64)
    if 0 < trues < n:
        relabeling[:, 0] = a1
        relabeling[:, 1] = a2
        return relabeling, 2
    return relabeling, 1


def _code_points(s: str) -> np.ndarray:
    return np.fromiter(map(ord, s), dtype=np.uint32, count=len(s))


def _canonical(x):
    # -0.0 already equals and hashes like 0.0; NaN needs one shared key
    if isinstance(x, (float, np.floating)) and x != x:
        return _NAN
    return x


def _as_list(s) -> list:
    items = s.tolist() if isinstance(s, np.ndarray) else s
    return [_canonical(x) for x in items]


def _hash_primitive(a1, a2):
    bits1 = as_key_bits(a1)
    bits2 = as_key_bits(a2)
    table = PrimitiveHashTable(bits1.size, key_bits=bits1.dtype.itemsize * 8)
    num_labels = table.populate(bits1)
    return table.get_many(bits1), table.get_many(bits2), num_labels


def _hash_objects(a1, a2):
    labels = {}
    for x in a1:
        labels.setdefault(x, len(labels))
    labels1 = np.fromiter((labels[x] for x in a1), dtype=np.int64, count=len(a1))
    labels2 = np.fromiter((labels.get(x, -1) for x in a2), dtype=np.int64, count=len(a2))
    return labels1, labels2, len(labels)


def _same(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    # NaN matches NaN
    if a.dtype.kind == "f":
        return (a == b) | (np.isnan(a) & np.isnan(b))
    return a == b


def _sort_primitive(a1, a2):
    c1 = np.sort(a1)
    if c1.size == 0:
        empty = np.empty(0, np.int64)
        return empty, empty, 0
    run_labels = np.concatenate((np.zeros(1, np.int64), np.cumsum(~_same(c1[1:], c1[:-1]), dtype=np.int64)))
    labels1 = run_labels[np.searchsorted(c1, a1)]
    j = np.minimum(np.searchsorted(c1, a2), c1.size - 1)
    labels2 = np.where(_same(c1[j], a2), run_labels[j], -1)
    return labels1, labels2, int(run_labels[-1]) + 1


def _sort_objects(a1, a2):
    """Sort-based labels for object lists, or None when s1 has no consistent order."""
    has_nan = any(x is _NAN for x in a1)
    try:
        c1 = sorted(x for x in a1 if x is not _NAN)
    except TypeError as e:
        logger.debug("Elements are not orderable (%s), relabeling by hashing instead", e)
        return None
    m = len(c1)
    run_labels = [0] * m
    current = 0
    for i in range(1, m):
        if c1[i] != c1[i - 1]:
            current += 1
        run_labels[i] = current
    num_labels = current + 1 if m else 0
    # NaN sorts after every other value
    nan_label = num_labels if has_nan else -1
    if has_nan:
        num_labels += 1

    def label_of(x):
        if x is _NAN:
            return nan_label
        try:
            j = bisect_left(c1, x)
        except TypeError:  # not comparable with s1's elements, so not among them
            return -1
        return run_labels[j] if j < m and c1[j] == x else -1

    labels1 = np.fromiter(map(label_of, a1), dtype=np.int64, count=len(a1))
    if labels1.size and labels1.min() < 0:
        logger.debug("Elements of s1 are not consistently ordered, relabeling by hashing instead")
        return None
    labels2 = np.fromiter(map(label_of, a2), dtype=np.int64, count=len(a2))
    return labels1, labels2, num_labels
