"""
Selection of order statistics without sorting.

Both `quickselect` and `median` reorder the sequence they are given; pass a
copy when the original order matters.
"""

import random
from typing import MutableSequence, Optional

from .exceptions import SelectionError


def partition(values: MutableSequence, left: int, right: int, pivot_index: int) -> int:
    """Partition values[left:right + 1] around values[pivot_index].

    Smaller values end up below the returned index and the rest above it.
    Returns the final index of the pivot.
    """
    pivot = values[pivot_index]
    values[pivot_index], values[right] = values[right], values[pivot_index]
    store = left
    for i in range(left, right):
        if values[i] < pivot:
            values[store], values[i] = values[i], values[store]
            store += 1
    values[store], values[right] = values[right], values[store]
    return store


def quickselect(values: MutableSequence, k: int, rng: Optional[random.Random] = None):
    """Return the k-th smallest item of values, with k counted from 1."""
    if k < 1:
        raise SelectionError(f"quickselect: k must be at least 1, got {k}")
    if len(values) == 0:
        raise SelectionError("quickselect: empty sequence")
    if k > len(values):
        raise SelectionError(f"quickselect: k={k} exceeds sequence length {len(values)}")

    rng = rng or random.Random()
    target = k - 1
    left, right = 0, len(values) - 1
    while left < right:
        pivot_index = partition(values, left, right, rng.randint(left, right))
        if target == pivot_index:
            return values[target]
        if target < pivot_index:
            right = pivot_index - 1
        else:
            left = pivot_index + 1
    return values[left]


def median(values: MutableSequence, rng: Optional[random.Random] = None):
    """Median of values; the mean of the two middle items when the length is even."""
    n = len(values)
    if n == 0:
        raise SelectionError("median: empty sequence")
    rng = rng or random.Random()
    if n % 2:
        return quickselect(values, (n + 1) // 2, rng)
    lower = quickselect(values, n // 2, rng)
    upper = quickselect(values, n // 2 + 1, rng)
    return (lower + upper) / 2
