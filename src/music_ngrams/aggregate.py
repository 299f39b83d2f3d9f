"""
This module contains the NGramAggregate class, which deduplicates a list of
n-grams and exposes the normalized frequency of each unique n-gram to feature
calculators.
"""

import logging
from typing import Iterable, Union

import numpy as np

from .ngram import NGram
from .stats import (
    index_of_largest,
    index_of_median,
    index_of_second_largest,
    ranked_indices,
    shannon_entropy,
)

logger = logging.getLogger("music_ngrams")

# Returned by get_normalized_frequency for identifiers that were never seen
NOT_FOUND = -1.0


class EmptyAggregateError(ValueError):
    """Raised when a ranking or statistic is requested from an aggregate
    that does not hold enough n-grams to answer it."""


class NGramAggregate:
    """An aggregate of n-grams of the same type and the same n-value.

    The aggregate is built once and is read-only afterwards. Unique n-grams
    are kept in the order in which they first occur, and each has a
    normalized frequency; together these frequencies sum to 1.

    If a filtering threshold is given, unique n-grams whose count is below
    that fraction of all n-grams are dropped, and the remaining frequencies
    are normalized as if the dropped n-grams had never been there.

    Attributes:
        ngrams (tuple[NGram, ...]): Every aggregated n-gram, in order
        unique_ngrams (tuple[NGram, ...]): Retained unique n-grams, in order of
            first occurrence
        normalized_frequencies_of_unique_ngrams (numpy.ndarray): Frequency of each
            unique n-gram, parallel to unique_ngrams
        filtering_threshold (float): Fraction below which n-grams are dropped
    """

    def __init__(self, ngrams: Iterable[NGram], filtering_threshold: float = 0.0):
        """Aggregate the given n-grams.

        Args:
            ngrams (Iterable[NGram]): The n-grams to aggregate, repeats included
            filtering_threshold (float): Unique n-grams with fewer occurrences
                than this fraction of all n-grams are dropped. 0 keeps all.
        """
        if not isinstance(filtering_threshold, (int, float)) or isinstance(filtering_threshold, bool):
            raise ValueError(
                f"filtering_threshold must be a number, got {type(filtering_threshold)}"
            )
        if not 0.0 <= filtering_threshold < 1.0:
            raise ValueError(
                f"filtering_threshold must be in [0, 1), got {filtering_threshold}"
            )

        self._ngrams = tuple(ngrams)
        self._filtering_threshold = float(filtering_threshold)

        # Count occurrences, keeping the first n-gram seen for each key
        counts = {}
        representatives = {}
        for ngram in self._ngrams:
            key = ngram.key
            if key in counts:
                counts[key] += 1
            else:
                counts[key] = 1
                representatives[key] = ngram

        if self._filtering_threshold > 0:
            total = len(self._ngrams)
            minimum_count = self._filtering_threshold * total
            for key in list(counts):
                if counts[key] < minimum_count:
                    logger.debug(
                        f"N-gram {representatives[key].string_identifier} with frequency "
                        f"{counts[key] / total} removed"
                    )
                    del counts[key]
                    del representatives[key]

        self._unique_ngrams = tuple(representatives.values())
        self._counts = np.array([counts[ng.key] for ng in self._unique_ngrams], dtype=float)
        if self._counts.size:
            self._frequencies = self._counts / self._counts.sum()
        else:
            self._frequencies = np.zeros(0)
        self._frequencies.setflags(write=False)
        self._counts.setflags(write=False)

        self._key_to_index = {ng.key: i for i, ng in enumerate(self._unique_ngrams)}
        self._string_id_to_frequency = {}
        for ngram, frequency in zip(self._unique_ngrams, self._frequencies):
            # First occurrence wins if two structurally different n-grams
            # share a string identifier
            self._string_id_to_frequency.setdefault(ngram.string_identifier, float(frequency))

    def __repr__(self) -> str:
        return (
            f"NGramAggregate(total={self.total_number_of_ngrams}, "
            f"unique={self.number_of_unique_ngrams}, "
            f"filtering_threshold={self._filtering_threshold})"
        )

    def __len__(self) -> int:
        return self.number_of_unique_ngrams

    # Basic accessors

    def no_ngrams(self) -> bool:
        """Return True if no n-grams were aggregated, or filtering removed them all."""
        return not self._unique_ngrams

    @property
    def ngrams(self) -> tuple:
        return self._ngrams

    @property
    def filtering_threshold(self) -> float:
        return self._filtering_threshold

    @property
    def total_number_of_ngrams(self) -> int:
        """Number of aggregated n-grams, repeats and filtered n-grams included."""
        return len(self._ngrams)

    @property
    def number_of_unique_ngrams(self) -> int:
        """Number of retained unique n-grams."""
        return len(self._unique_ngrams)

    @property
    def unique_ngrams(self) -> tuple:
        return self._unique_ngrams

    @property
    def counts_of_unique_ngrams(self) -> np.ndarray:
        return self._counts

    @property
    def normalized_frequencies_of_unique_ngrams(self) -> np.ndarray:
        return self._frequencies

    @property
    def string_id_to_frequency_map(self) -> dict:
        return dict(self._string_id_to_frequency)

    def get_normalized_frequency(self, identifier: Union[NGram, str, Iterable]) -> float:
        """Return the normalized frequency of an n-gram.

        Parameters
        ----------
        identifier : NGram, str or Iterable
            An n-gram, a string identifier, or a sequence of moment vectors.
            Anything else is reported as not found.

        Returns
        -------
        float
            The normalized frequency, or -1.0 if the n-gram never occurred or
            was filtered out
        """
        if isinstance(identifier, NGram):
            index = self._key_to_index.get(identifier.key)
            return NOT_FOUND if index is None else float(self._frequencies[index])
        if isinstance(identifier, str):
            return self._string_id_to_frequency.get(identifier, NOT_FOUND)
        try:
            index = self._key_to_index.get(tuple(tuple(moment) for moment in identifier))
        except TypeError:
            # Not a sequence of hashable moment vectors, e.g. a flat list of values
            return NOT_FOUND
        return NOT_FOUND if index is None else float(self._frequencies[index])

    # Ranking

    def _require_unique_ngrams(self, minimum: int, query: str) -> None:
        if self.number_of_unique_ngrams < minimum:
            if self.no_ngrams():
                raise EmptyAggregateError(
                    f"Cannot get the {query} of an aggregate with no n-grams "
                    f"({self.total_number_of_ngrams} before filtering); check no_ngrams() first"
                )
            raise EmptyAggregateError(
                f"Cannot get the {query} of an aggregate with "
                f"{self.number_of_unique_ngrams} unique n-gram(s); need at least {minimum}"
            )

    def most_common_ngram(self) -> NGram:
        """Return the n-gram with the highest frequency.

        The n-gram that occurred first wins ties.

        Raises
        ------
        EmptyAggregateError
            If the aggregate holds no unique n-grams
        """
        self._require_unique_ngrams(1, "most common n-gram")
        return self._unique_ngrams[index_of_largest(self._frequencies)]

    def second_most_common_ngram(self) -> NGram:
        """Return the n-gram with the second highest frequency.

        Raises
        ------
        EmptyAggregateError
            If the aggregate holds fewer than two unique n-grams
        """
        self._require_unique_ngrams(2, "second most common n-gram")
        return self._unique_ngrams[index_of_second_largest(self._frequencies)]

    def most_common_identifier(self) -> tuple:
        return self.most_common_ngram().identifier

    def second_most_common_identifier(self) -> tuple:
        return self.second_most_common_ngram().identifier

    def top_most_common_string_identifiers(self, k: int) -> list[str]:
        """Return up to k string identifiers, most common first.

        Parameters
        ----------
        k : int
            Maximum number of identifiers to return

        Returns
        -------
        list[str]
            String identifiers ordered by descending frequency, earliest
            occurrence first on ties
        """
        if k < 0:
            raise ValueError(f"k must be non-negative, got {k}")
        self._require_unique_ngrams(1, "most common string identifiers")
        return [
            self._unique_ngrams[i].string_identifier
            for i in ranked_indices(self._frequencies)[:k]
        ]

    def top_ten_most_common_string_identifiers(self) -> list[str]:
        return self.top_most_common_string_identifiers(10)

    # Statistics

    def median_frequency(self) -> float:
        """Return the frequency of the n-gram type with the median prevalence."""
        self._require_unique_ngrams(1, "median frequency")
        return float(self._frequencies[index_of_median(self._frequencies)])

    def number_of_ngrams_at_or_above(self, frequency: float) -> int:
        """Count unique n-grams whose normalized frequency is at least the given value."""
        self._require_unique_ngrams(1, "number of common n-grams")
        return int(np.count_nonzero(self._frequencies >= frequency))

    def number_of_ngrams_at_or_below(self, frequency: float) -> int:
        """Count unique n-grams whose normalized frequency is at most the given value."""
        self._require_unique_ngrams(1, "number of rare n-grams")
        return int(np.count_nonzero(self._frequencies <= frequency))

    def number_of_ngrams_occurring_once(self) -> int:
        """Count unique n-grams that occur exactly once."""
        self._require_unique_ngrams(1, "number of n-grams occurring once")
        return int(np.count_nonzero(self._counts == 1))

    def entropy(self) -> float:
        """Shannon entropy (bits) of the unique n-gram frequencies."""
        self._require_unique_ngrams(1, "entropy")
        return shannon_entropy(self._frequencies)


def aggregate_ngrams(
    ngrams: Iterable[NGram], filtering_threshold: float = 0.0
) -> NGramAggregate:
    """Build an NGramAggregate.

    Parameters
    ----------
    ngrams : Iterable[NGram]
        N-grams to aggregate, repeats included
    filtering_threshold : float
        Fraction of all n-grams below which a unique n-gram is dropped

    Returns
    -------
    NGramAggregate
        The aggregate

    Examples
    --------
    >>> from music_ngrams.ngram import build_ngrams
    >>> aggregate = aggregate_ngrams(build_ngrams([[2], [-2], [2], [-2], [2]], 3))
    >>> aggregate.most_common_ngram().string_identifier
    '2 -2 2'
    >>> [round(float(f), 4) for f in aggregate.normalized_frequencies_of_unique_ngrams]
    [0.6667, 0.3333]
    """
    return NGramAggregate(ngrams, filtering_threshold=filtering_threshold)
