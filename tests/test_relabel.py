import logging

import numpy as np
import pytest
from errors import MultisetMismatchError
from relabel import RelabelByHashing, RelabelBySorting, SequenceKind, classify


class NonComparable:
    def __init__(self, value):
        self.value = value

    def __eq__(self, other):
        return isinstance(other, NonComparable) and other.value == self.value

    def __hash__(self):
        return hash(self.value)


class TestClassify:
    def test_numeric_arrays_promoted(self):
        kind, a1, a2 = classify(np.array([1, 2], np.int32), np.array([2.0, 1.0]))
        assert kind is SequenceKind.PRIMITIVE
        assert a1.dtype == a2.dtype == np.float64

    def test_mixed_signedness_64_bit_compared_exactly(self):
        kind, a1, a2 = classify(np.array([2 ** 53 + 1], np.int64), np.array([2 ** 53], np.uint64))
        assert kind is SequenceKind.OBJECT
        assert a1 == [2 ** 53 + 1]
        assert a2 == [2 ** 53]

    def test_nan_objects_share_one_key(self):
        _, a1, a2 = classify([float("nan"), 1.0], (np.float64("nan"), 1.0))
        assert a1[0] is a2[0]
        assert a1[1] == 1.0

    def test_strings_as_code_points(self):
        kind, a1, _ = classify("ab\U0001F600", "\U0001F600ab")
        assert kind is SequenceKind.PRIMITIVE
        np.testing.assert_array_equal(a1, [97, 98, 0x1F600])

    def test_bytes(self):
        kind, a1, _ = classify(b"\xffa", bytearray(b"a\xff"))
        assert kind is SequenceKind.PRIMITIVE
        assert a1.dtype == np.uint8

    def test_booleans(self):
        kind, _, _ = classify(np.array([True, False]), np.array([False, True]))
        assert kind is SequenceKind.BOOLEAN

    def test_everything_else_is_objects(self):
        assert classify([1, 2], [2, 1])[0] is SequenceKind.OBJECT
        assert classify(np.array(["a", "b"]), np.array(["b", "a"]))[0] is SequenceKind.OBJECT
        kind, a1, a2 = classify("ab", ["b", "a"])
        assert kind is SequenceKind.OBJECT
        assert a1 == ["a", "b"]


class TestRelabelByHashing:
    def test_first_occurrence_labels(self):
        relabeling, num_labels = RelabelByHashing().relabel("cabca", "aabcc")
        assert num_labels == 3
        np.testing.assert_array_equal(relabeling, [[0, 1], [1, 1], [2, 2], [0, 0], [1, 0]])

    def test_objects_match_primitives(self):
        prim, n1 = RelabelByHashing().relabel(np.array([30, 10, 20, 30]), np.array([10, 30, 30, 20]))
        obj, n2 = RelabelByHashing().relabel([30, 10, 20, 30], [10, 30, 30, 20])
        assert n1 == n2 == 3
        np.testing.assert_array_equal(prim, obj)

    def test_deterministic(self):
        s1 = np.random.default_rng(7).integers(-50, 50, 200)
        s2 = np.random.default_rng(8).permutation(s1)
        first, n = RelabelByHashing().relabel(s1, s2)
        for _ in range(3):
            again, m = RelabelByHashing().relabel(s1, s2)
            assert m == n
            np.testing.assert_array_equal(again, first)

    def test_missing_element(self):
        with pytest.raises(MultisetMismatchError, match="not in s1"):
            RelabelByHashing().relabel("abcd", "abce")
        with pytest.raises(MultisetMismatchError):
            RelabelByHashing().relabel(np.array([1.0, 2.0]), np.array([1.0, 3.0]))
        with pytest.raises(MultisetMismatchError):
            RelabelByHashing().relabel(["a", 1], ["a", 2])

    def test_distinct_nan_objects(self):
        relabeling, num_labels = RelabelByHashing().relabel([float("nan"), 2.0], [2.0, float("nan")])
        assert num_labels == 2
        np.testing.assert_array_equal(relabeling, [[0, 1], [1, 0]])

    def test_unhashable_objects(self):
        with pytest.raises(TypeError):
            RelabelByHashing().relabel([[1], [2]], [[2], [1]])


class TestRelabelBySorting:
    def test_value_order_labels(self):
        relabeling, num_labels = RelabelBySorting().relabel("cabca", "aabcc")
        assert num_labels == 3
        np.testing.assert_array_equal(relabeling, [[2, 0], [0, 0], [1, 1], [2, 2], [0, 2]])

    def test_objects_match_primitives(self):
        prim, n1 = RelabelBySorting().relabel(np.array([30, 10, 20, 30]), np.array([10, 30, 30, 20]))
        obj, n2 = RelabelBySorting().relabel([30, 10, 20, 30], [10, 30, 30, 20])
        assert n1 == n2 == 3
        np.testing.assert_array_equal(prim, obj)

    def test_nan_and_signed_zero(self):
        relabeling, num_labels = RelabelBySorting().relabel(
            np.array([np.nan, 0.0, 1.0, np.nan]), np.array([-0.0, np.nan, np.nan, 1.0])
        )
        assert num_labels == 3
        np.testing.assert_array_equal(relabeling, [[2, 0], [0, 2], [1, 2], [2, 1]])

    def test_nan_objects_label_last(self):
        nan = float("nan")
        relabeling, num_labels = RelabelBySorting().relabel([1.0, nan, 0.0, nan], [float("nan"), 0.0, nan, 1.0])
        assert num_labels == 3
        np.testing.assert_array_equal(relabeling, [[1, 2], [2, 0], [0, 2], [2, 1]])

    def test_unhashable_but_orderable(self):
        relabeling, num_labels = RelabelBySorting().relabel([[2], [1]], [[1], [2]])
        assert num_labels == 2
        np.testing.assert_array_equal(relabeling, [[1, 0], [0, 1]])

    def test_falls_back_to_hashing(self, caplog):
        s1 = [NonComparable(i) for i in (3, 1, 2)]
        s2 = [NonComparable(i) for i in (2, 3, 1)]
        with caplog.at_level(logging.DEBUG, logger="relabel"):
            relabeling, num_labels = RelabelBySorting().relabel(s1, s2)
        assert "not orderable" in caplog.text
        expected, _ = RelabelByHashing().relabel(s1, s2)
        assert num_labels == 3
        np.testing.assert_array_equal(relabeling, expected)

    def test_missing_element(self):
        with pytest.raises(MultisetMismatchError):
            RelabelBySorting().relabel(np.array([1, 2, 3]), np.array([1, 2, 4]))
        with pytest.raises(MultisetMismatchError):
            RelabelBySorting().relabel(np.array([1, 2, 3]), np.array([1, 2, 0]))
        with pytest.raises(MultisetMismatchError):
            RelabelBySorting().relabel([1, 2, 3], [1, 2, "x"])


@pytest.mark.parametrize("relabeler", [RelabelByHashing(), RelabelBySorting()])
class TestBooleans:
    def test_two_labels(self, relabeler):
        relabeling, num_labels = relabeler.relabel(np.array([True, False, True]), np.array([False, True, True]))
        assert num_labels == 2
        np.testing.assert_array_equal(relabeling, [[1, 0], [0, 1], [1, 1]])

    def test_uniform_single_label(self, relabeler):
        for value in (True, False):
            relabeling, num_labels = relabeler.relabel(np.full(4, value), np.full(4, value))
            assert num_labels == 1
            assert not relabeling.any()

    def test_count_mismatch(self, relabeler):
        with pytest.raises(MultisetMismatchError, match="True values"):
            relabeler.relabel(np.array([True, True, False]), np.array([True, False, False]))
