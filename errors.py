from __future__ import annotations


class SequenceDistanceError(ValueError):
    """Base class for precondition violations of a sequence distance computation."""


class SequenceLengthError(SequenceDistanceError):
    """Raised when the two sequences differ in length."""


class MultisetMismatchError(SequenceDistanceError):
    """Raised when the two sequences do not hold the same elements with the same multiplicities."""


class SequenceTypeError(SequenceDistanceError, TypeError):
    """Raised when an input is absent or is not a one-dimensional sized sequence."""
