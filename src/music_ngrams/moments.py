"""
This module contains the values that n-grams are built from ("moments"):
melodic intervals, vertical intervals and rhythmic values, along with the
transforms that may be applied to intervals before they are windowed.
"""

import math
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Rest:
    """Marker for a moment where one side of an interval is silent.

    The legacy numeric code is kept so that string identifiers and
    vector-valued feature outputs look exactly like they did when rests
    were encoded as plain numbers.

    Attributes:
        code (int): 128 or -128
    """

    code: int

    def __str__(self) -> str:
        return str(self.code)

    def __float__(self) -> float:
        return float(self.code)

    def __int__(self) -> int:
        return self.code


# Vertical interval to a voice that is resting
VERTICAL_REST = Rest(128)
# Melodic motion from a note into a rest
NOTE_TO_REST = Rest(-128)
# Melodic motion from a rest into a note (or across a rest)
REST_TO_NOTE = Rest(128)

Moment = Union[int, float, Rest]

RHYTHMIC_VALUES = (0.125, 0.25, 0.5, 0.75, 1.0, 2.0, 3.0, 4.0, 6.0, 8.0, 10.0, 12.0)

# Generic interval size for each number of semitones within an octave
_GENERIC_INTERVALS = (1, 2, 2, 3, 3, 4, 4, 5, 6, 6, 7, 7)

PERCUSSION_CHANNEL = 9


def is_rest(value) -> bool:
    return isinstance(value, Rest)


def quantize_rhythmic_value(quarter_notes: float) -> float:
    """Quantize a duration to the nearest supported rhythmic value.

    Parameters
    ----------
    quarter_notes : float
        Duration measured in quarter notes

    Returns
    -------
    float
        The closest member of RHYTHMIC_VALUES. The shorter value is chosen
        when the duration lies exactly between two of them.

    Examples
    --------
    >>> quantize_rhythmic_value(0.49)
    0.5
    >>> quantize_rhythmic_value(20.0)
    12.0
    """
    best = RHYTHMIC_VALUES[0]
    best_distance = abs(quarter_notes - best)
    for value in RHYTHMIC_VALUES[1:]:
        distance = abs(quarter_notes - value)
        if distance < best_distance:
            best = value
            best_distance = distance
    return best


def semitones_to_generic_interval(semitones: int) -> int:
    """Convert a signed number of semitones to a signed generic interval.

    Parameters
    ----------
    semitones : int
        Interval size in semitones

    Returns
    -------
    int
        Generic interval number, where a unison is 1, a third is 3 and an
        octave is 8. Compound intervals add 7 for every octave. The sign of
        the input is kept.

    Examples
    --------
    >>> semitones_to_generic_interval(4)
    3
    >>> semitones_to_generic_interval(-7)
    -5
    >>> semitones_to_generic_interval(12)
    8
    """
    size = abs(int(semitones))
    generic = _GENERIC_INTERVALS[size % 12] + 7 * (size // 12)
    return -generic if semitones < 0 else generic


def wrap_interval(semitones: int) -> int:
    """Reduce an interval to within an octave, keeping its sign.

    >>> wrap_interval(14)
    2
    >>> wrap_interval(-14)
    -2
    """
    return int(math.fmod(semitones, 12))


def transform_interval(
    value: Moment,
    direction: bool = True,
    wrapping: bool = False,
    generic_intervals: bool = False,
) -> Moment:
    """Apply the optional interval transforms to a single moment.

    Transforms are applied in the order direction, wrapping, generic
    conversion. Rests are returned unchanged.

    Parameters
    ----------
    value : Moment
        Interval in semitones, or a Rest
    direction : bool
        If False, the absolute value of the interval is taken
    wrapping : bool
        If True, the interval is reduced modulo 12
    generic_intervals : bool
        If True, the interval is converted to a generic interval

    Returns
    -------
    Moment
        The transformed interval

    Examples
    --------
    >>> transform_interval(-14, direction=False, wrapping=True)
    2
    >>> transform_interval(VERTICAL_REST, direction=False, wrapping=True, generic_intervals=True)
    Rest(code=128)
    """
    if is_rest(value):
        return value
    if not direction:
        value = abs(value)
    if wrapping:
        value = wrap_interval(value)
    if generic_intervals:
        value = semitones_to_generic_interval(value)
    return value
