"""
This module contains the ranking and descriptive statistics used on n-gram
frequency distributions. Ties are always resolved in favour of the value that
appears first, so results follow the order in which n-grams were first seen.
"""

import numpy as np
import scipy.stats


def ranked_indices(values) -> np.ndarray:
    """Return indices ordered from the largest to the smallest value.

    Parameters
    ----------
    values : list or numpy.ndarray
        Values to rank

    Returns
    -------
    numpy.ndarray
        Indices into values, largest first. Equal values keep their
        original order.

    Examples
    --------
    >>> ranked_indices([0.25, 0.5, 0.25]).tolist()
    [1, 0, 2]
    """
    values = np.asarray(values, dtype=float)
    return np.argsort(-values, kind="stable")


def index_of_largest(values) -> int:
    """Return the index of the largest value, the earliest one on ties.

    >>> index_of_largest([0.5, 0.5])
    0
    """
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        raise ValueError("Cannot rank an empty sequence")
    return int(ranked_indices(values)[0])


def index_of_second_largest(values) -> int:
    """Return the index of the second largest value.

    When several entries share the largest value, the second of them is
    returned.

    >>> index_of_second_largest([0.2, 0.4, 0.4])
    2
    >>> index_of_second_largest([0.6, 0.1, 0.3])
    2
    """
    values = np.asarray(values, dtype=float)
    if values.size < 2:
        raise ValueError(
            f"Need at least 2 values to find the second largest, got {values.size}"
        )
    return int(ranked_indices(values)[1])


def index_of_median(values) -> int:
    """Return the index of the median value.

    Values are sorted in ascending order (earliest first on ties) and the
    entry at the middle position is chosen; for an even number of values
    this is the upper of the two middle entries.

    >>> index_of_median([0.5, 0.1, 0.4])
    2
    >>> index_of_median([0.4, 0.1, 0.3, 0.2])
    2
    """
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        raise ValueError("Cannot find the median of an empty sequence")
    order = np.argsort(values, kind="stable")
    return int(order[values.size // 2])


def shannon_entropy(frequencies) -> float:
    """Calculate the Shannon entropy (in bits) of a frequency distribution.

    Parameters
    ----------
    frequencies : list or numpy.ndarray
        Normalized or raw frequencies

    Returns
    -------
    float
        Entropy in bits, 0.0 for an empty distribution

    Examples
    --------
    >>> shannon_entropy([0.5, 0.5])
    1.0
    """
    frequencies = np.asarray(frequencies, dtype=float)
    if frequencies.size == 0:
        return 0.0
    return float(scipy.stats.entropy(frequencies, base=2))
