"""
Hash tables from scalar keys to dense integer labels.

Keys are unsigned bit patterns (see ``as_key_bits``), so one table serves every
fixed-width numeric dtype. Keys of 16 bits or fewer index a direct table that
spans the whole key space; wider keys are chained off a power-of-two head array.
"""
from __future__ import annotations
import numba as nb
import numpy as np

MAX_CAPACITY = 1 << 30
NARROW_MAX_CAPACITY = 1 << 16
NARROW_KEY_BITS = 16
LOAD_FACTOR = 1.334

_LOW32 = np.uint64(0xFFFFFFFF)
_SHIFT32 = np.uint64(32)
_SHIFT16 = np.uint64(16)


def table_capacity(min_size: int, max_size: int = MAX_CAPACITY) -> int:
    """Smallest power of two >= ``min_size``, capped at ``max_size``."""
    if min_size >= max_size:
        return max_size
    return 1 << max(min_size - 1, 0).bit_length()


def as_key_bits(values: np.ndarray) -> np.ndarray:
    """
    Reinterpret a numeric array as unsigned key bits of the same width.

    Floats are canonicalized first so that -0.0 keys as 0.0 and every NaN keys
    alike. Keys wider than ``NARROW_KEY_BITS`` are widened to uint64.
    """
    values = np.ascontiguousarray(values, dtype=values.dtype.newbyteorder("="))
    if values.dtype.kind == "f":
        zero = values.dtype.type(0)
        values = np.where(np.isnan(values), values.dtype.type(np.nan), values + zero)
    width = values.dtype.itemsize
    bits = values.view(np.dtype(f"u{width}"))
    if width * 8 <= NARROW_KEY_BITS:
        return bits
    return bits.astype(np.uint64)


@nb.njit(cache=True, fastmath=True)
def slot(key, mask):
    x = np.uint64(key)
    y = (x ^ (x >> _SHIFT32)) & _LOW32
    return np.int64((y ^ (y >> _SHIFT16)) & np.uint64(mask))


@nb.njit(cache=True, fastmath=True)
def _find(head, nxt, keys, labels, mask, key):
    e = head[slot(key, mask)]
    while e != -1:
        if keys[e] == key:
            return labels[e]
        e = nxt[e]
    return -1


@nb.njit(cache=True, fastmath=True)
def _insert(head, nxt, keys, labels, size, mask, key, label):
    i = slot(key, mask)
    keys[size] = key
    labels[size] = label
    nxt[size] = head[i]
    head[i] = size


@nb.njit(cache=True, fastmath=True)
def _populate_chained(head, nxt, keys, labels, size, mask, values):
    for x in values:
        if _find(head, nxt, keys, labels, mask, x) == -1:
            if size == keys.size:
                return -1
            _insert(head, nxt, keys, labels, size, mask, x, size)
            size += 1
    return size


@nb.njit(cache=True, fastmath=True)
def _find_many(head, nxt, keys, labels, mask, values):
    out = np.empty(values.size, np.int64)
    for i in range(values.size):
        out[i] = _find(head, nxt, keys, labels, mask, values[i])
    return out


@nb.njit(cache=True, fastmath=True)
def _populate_direct(table, size, values):
    for x in values:
        if table[x] == -1:
            table[x] = size
            size += 1
    return size


class PrimitiveHashTable:
    """
    Fixed-capacity map from unsigned key bits to non-negative labels.

    ``get`` returns -1 for an absent key. ``put`` assumes the key is absent;
    callers check with ``contains_key`` first, as ``populate`` does.
    """
    __slots__ = ("key_bits", "capacity", "mask", "_size", "_head", "_next", "_keys", "_labels")

    def __init__(self, expected_size: int, key_bits: int = 64):
        self.key_bits = key_bits
        self._size = 0
        if key_bits <= NARROW_KEY_BITS:
            # Spans the whole key space, so 65536 entries for 16-bit keys even when n is tiny
            self.capacity = table_capacity(1 << key_bits, NARROW_MAX_CAPACITY)
            self._next = self._keys = self._labels = None
        else:
            self.capacity = table_capacity(int(LOAD_FACTOR * expected_size) + 2)
            self._next = np.full(expected_size, -1, np.int64)
            self._keys = np.zeros(expected_size, np.uint64)
            self._labels = np.zeros(expected_size, np.int64)
        self.mask = self.capacity - 1
        self._head = np.full(self.capacity, -1, np.int64)

    def __len__(self) -> int:
        return self._size

    @property
    def direct(self) -> bool:
        return self._keys is None

    def contains_key(self, key) -> bool:
        return self.get(key) != -1

    def get(self, key) -> int:
        if self.direct:
            return int(self._head[int(key) & self.mask])
        return int(_find(self._head, self._next, self._keys, self._labels, self.mask, np.uint64(key)))

    def put(self, key, label: int) -> None:
        if self.direct:
            self._head[int(key) & self.mask] = label
        else:
            if self._size == self._keys.size:
                raise OverflowError(f"Hash table is full ({self._size} keys)")
            _insert(self._head, self._next, self._keys, self._labels, self._size, self.mask,
                    np.uint64(key), label)
        self._size += 1

    def populate(self, keys: np.ndarray) -> int:
        """Label each first-seen key by the count of distinct keys before it. Returns the key count."""
        if self.direct:
            self._size = int(_populate_direct(self._head, self._size, keys))
            return self._size
        size = int(_populate_chained(self._head, self._next, self._keys, self._labels, self._size,
                                     self.mask, keys))
        if size < 0:
            raise OverflowError(f"Hash table is full ({self._keys.size} keys)")
        self._size = size
        return size

    def get_many(self, keys: np.ndarray) -> np.ndarray:
        if self.direct:
            return self._head[keys]
        return _find_many(self._head, self._next, self._keys, self._labels, self.mask, keys)
