"""
This module contains the n-gram identifier types and the sliding window that
builds them from sequences of moments.

An n-gram is a sequence of n musical moments, where each moment is a vector
of one or more values (a melodic interval, a rhythmic value, or the vertical
intervals between one voice and several others).
"""

from typing import Iterable, Sequence

from .moments import is_rest


class NGramError(ValueError):
    """Raised when an n-gram cannot be constructed from the data given."""


def _freeze(sequence: Iterable[Iterable]) -> tuple:
    # Copy into tuples so later changes to the caller's lists have no effect
    return tuple(tuple(moment) for moment in sequence)


def identifier_to_string(identifier: Iterable[Iterable]) -> str:
    """Return the canonical string form of an identifier.

    The values of one moment are concatenated without a separator and the
    moments are separated by a single space. Values are not rounded.

    Parameters
    ----------
    identifier : Iterable[Iterable]
        Sequence of moment vectors

    Returns
    -------
    str
        Canonical string identifier

    Examples
    --------
    >>> identifier_to_string([[2], [-2], [2]])
    '2 -2 2'
    >>> identifier_to_string([[0.5], [1.0]])
    '0.5 1.0'
    >>> identifier_to_string([[4, 7], [3, 128]])
    '47 3128'
    """
    return " ".join("".join(str(value) for value in moment) for moment in identifier)


class NGram:
    """A sequence of n musical moments.

    Two n-grams are equal when their identifiers hold the same values in the
    same order. This agrees with comparing string identifiers, except that
    moments such as [4, 7] and [47] (which share the string "47") are kept
    apart.

    Attributes:
        identifier (tuple[tuple, ...]): The moment vectors of this n-gram
        n_value (int): The number of moments
        string_identifier (str): Canonical string form of the identifier
    """

    __slots__ = ("_identifier", "_string_identifier")

    def __init__(self, sequence: Iterable[Iterable]):
        """Encode the given sequence of moment vectors.

        Args:
            sequence (Iterable[Iterable]): The moments to encode. Each moment
                is copied.
        """
        self._identifier = _freeze(sequence)
        self._string_identifier = identifier_to_string(self._identifier)

    @property
    def identifier(self) -> tuple:
        return self._identifier

    @property
    def n_value(self) -> int:
        return len(self._identifier)

    @property
    def string_identifier(self) -> str:
        return self._string_identifier

    @property
    def key(self) -> tuple:
        """Hashable value used to deduplicate n-grams in an aggregate."""
        return self._identifier

    def to_vector(self, index: int = 0) -> list[float]:
        """Return one value of every moment as a list of floats.

        Rests are returned as their numeric code.

        >>> NGram([[2], [-2], [2]]).to_vector()
        [2.0, -2.0, 2.0]
        """
        return [float(moment[index]) for moment in self._identifier]

    def __eq__(self, other) -> bool:
        if not isinstance(other, NGram):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __len__(self) -> int:
        return self.n_value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({[list(moment) for moment in self._identifier]})"

    def __str__(self) -> str:
        """Each moment enclosed in parentheses, e.g. '(2) (-2) (2) '."""
        return "".join(
            "(" + ", ".join(str(value) for value in moment) + ") "
            for moment in self._identifier
        )


class TwoDimensionalNGram(NGram):
    """An n-gram with a second sequence of moments linking the first.

    The secondary sequence holds the moments that occur between each pair
    of consecutive primary moments, e.g. the melodic motion between two
    vertical sonorities. It must therefore be exactly one moment shorter
    than the primary sequence.

    Attributes:
        secondary_identifier (tuple[tuple, ...]): The linking moment vectors
        joint_identifier (tuple[tuple, ...]): Primary and secondary moments
            interleaved, starting and ending with a primary moment
    """

    __slots__ = ("_secondary_identifier", "_joint_string_identifier")

    def __init__(self, primary_sequence: Iterable[Iterable], secondary_sequence: Iterable[Iterable]):
        super().__init__(primary_sequence)
        secondary = _freeze(secondary_sequence)
        if len(secondary) != self.n_value - 1:
            raise NGramError(
                f"Secondary sequence must contain {self.n_value - 1} moments for "
                f"{self.n_value} primary moments, got {len(secondary)}"
            )
        self._secondary_identifier = secondary
        self._joint_string_identifier = identifier_to_string(self.joint_identifier)

    @property
    def secondary_identifier(self) -> tuple:
        return self._secondary_identifier

    @property
    def joint_identifier(self) -> tuple:
        joint = []
        for i, moment in enumerate(self.identifier):
            joint.append(moment)
            if i < len(self._secondary_identifier):
                joint.append(self._secondary_identifier[i])
        return tuple(joint)

    @property
    def joint_string_identifier(self) -> str:
        return self._joint_string_identifier

    @property
    def string_identifier(self) -> str:
        return self._joint_string_identifier

    @property
    def key(self) -> tuple:
        return (self.identifier, self._secondary_identifier)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({[list(m) for m in self.identifier]}, "
            f"{[list(m) for m in self._secondary_identifier]})"
        )

    def __str__(self) -> str:
        """Primary moments in brackets, secondary moments in parentheses.

        >>> from music_ngrams.moments import VERTICAL_REST, NOTE_TO_REST
        >>> str(TwoDimensionalNGram([[7], [VERTICAL_REST]], [[NOTE_TO_REST]]))
        '[7] (Rest) [Rest] '
        """

        def _format(moment):
            return " ".join("Rest" if is_rest(value) else str(value) for value in moment)

        s = ""
        for i, moment in enumerate(self.identifier):
            s += "[" + _format(moment) + "] "
            if i < len(self._secondary_identifier):
                s += "(" + _format(self._secondary_identifier[i]) + ") "
        return s


def _check_n_value(n_value: int) -> None:
    if not isinstance(n_value, int) or n_value < 1:
        raise NGramError(f"n_value must be a positive integer, got {n_value!r}")


def build_ngrams(sequence: Sequence[Iterable], n_value: int) -> list[NGram]:
    """Slide a window of n moments over a sequence, one moment at a time.

    Parameters
    ----------
    sequence : Sequence[Iterable]
        Ordered moment vectors
    n_value : int
        Number of moments in each n-gram

    Returns
    -------
    list[NGram]
        One n-gram per window position, in source order. Empty if the
        sequence is shorter than n_value.

    Examples
    --------
    >>> [ng.string_identifier for ng in build_ngrams([[2], [-2], [2], [-2], [2]], 3)]
    ['2 -2 2', '-2 2 -2', '2 -2 2']
    """
    _check_n_value(n_value)
    moments = _freeze(sequence)
    return [
        NGram(moments[start : start + n_value])
        for start in range(len(moments) - n_value + 1)
    ]


def build_two_dimensional_ngrams(
    primary_sequence: Sequence[Iterable],
    secondary_sequence: Sequence[Iterable],
    n_value: int,
) -> list[TwoDimensionalNGram]:
    """Slide lockstep windows over a primary sequence and its linking moments.

    Parameters
    ----------
    primary_sequence : Sequence[Iterable]
        Ordered primary moment vectors
    secondary_sequence : Sequence[Iterable]
        Moment vectors linking each consecutive pair of primary moments.
        Must be one shorter than primary_sequence.
    n_value : int
        Number of primary moments in each n-gram

    Returns
    -------
    list[TwoDimensionalNGram]
        One n-gram per window position, in source order

    Raises
    ------
    NGramError
        If the sequence lengths do not match or n_value is not positive
    """
    _check_n_value(n_value)
    primary = _freeze(primary_sequence)
    secondary = _freeze(secondary_sequence)
    if primary and len(secondary) != len(primary) - 1:
        raise NGramError(
            f"Secondary sequence must contain {len(primary) - 1} moments for "
            f"{len(primary)} primary moments, got {len(secondary)}"
        )
    if not primary and secondary:
        raise NGramError(
            f"Secondary sequence must be empty when there are no primary moments, "
            f"got {len(secondary)}"
        )
    return [
        TwoDimensionalNGram(
            primary[start : start + n_value],
            secondary[start : start + n_value - 1],
        )
        for start in range(len(primary) - n_value + 1)
    ]
