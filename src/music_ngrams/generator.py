"""
This module contains the NGramGenerator class, which turns the voices of a
Piece into melodic interval, vertical interval and rhythmic value n-grams
(and the two-dimensional combinations of these), and the
NGramAggregateProvider class, which builds and caches the aggregates that the
feature calculators use.

Each note onset in a voice begins a new moment. Vertical intervals are
measured on the onset slice timeline shared by all voices, while melodic
intervals and rhythmic values are measured separately within each voice, so
n-grams of those types never span two voices.
"""

import logging
from functools import cached_property
from typing import Iterable, Optional

from .aggregate import NGramAggregate
from .moments import VERTICAL_REST, transform_interval
from .ngram import (
    NGram,
    TwoDimensionalNGram,
    build_ngrams,
    build_two_dimensional_ngrams,
)
from .representations import Piece, Voice, melodic_transition

logger = logging.getLogger("music_ngrams")


class NGramRequestError(ValueError):
    """Raised when n-grams are requested with missing or inconsistent parameters."""


def _transform_moment(moment: Iterable, direction: bool, wrapping: bool, generic_intervals: bool) -> list:
    return [
        transform_interval(value, direction, wrapping, generic_intervals)
        for value in moment
    ]


class NGramGenerator:
    """Generates n-grams from the voices of a single piece.

    Intervals may be transformed before they are windowed: if direction is
    False the absolute value is used, if wrapping is True intervals are
    reduced to within an octave, and if generic_intervals is True semitone
    counts are converted to generic intervals. Rests are never transformed.
    """

    def __init__(self, piece: Piece):
        """Initialize the generator.

        Args:
            piece (Piece): The piece whose voices n-grams are built from
        """
        self.piece = piece

    # Validation

    @staticmethod
    def _check_n_value(n_value) -> None:
        if n_value is None:
            raise NGramRequestError("n_value must be set")
        if not isinstance(n_value, int) or isinstance(n_value, bool) or n_value < 1:
            raise NGramRequestError(f"n_value must be a positive integer, got {n_value!r}")

    def _check_voices(self, voices, minimum: int = 1) -> list:
        if voices is None:
            raise NGramRequestError("voices must be set")
        voices = [tuple(voice) for voice in voices]
        if len(voices) < minimum:
            raise NGramRequestError(
                f"At least {minimum} voice(s) required, got {len(voices)}"
            )
        if len(set(voices)) != len(voices):
            raise NGramRequestError(f"voices must not contain duplicates, got {voices}")
        unknown = [voice for voice in voices if voice not in self.piece.notes_by_voice]
        if unknown:
            raise NGramRequestError(
                f"Unknown voice(s) {unknown}; pitched voices in this piece are {self.piece.voices}"
            )
        return voices

    def _check_base_voice(self, voices: list, base_voice) -> Voice:
        if base_voice is None:
            return voices[0]
        base_voice = tuple(base_voice)
        if base_voice not in voices:
            raise NGramRequestError(
                f"Base voice {base_voice} must be one of the requested voices {voices}"
            )
        return base_voice

    # Moment sequences

    def _selected_slices(self, voices: list) -> list[int]:
        # Only slices where one of the requested voices attacks a note
        slices = self.piece.note_onset_slices
        return [
            index
            for index in range(slices.number_of_slices)
            if any(slices.is_new_onset(voice, index) for voice in voices)
        ]

    def _vertical_moments(
        self, voices: list, base_voice: Voice, ignore_rests_in_base_voice: bool
    ) -> tuple[list, list]:
        """Return the vertical interval moments and the slice index of each."""
        slices = self.piece.note_onset_slices
        moments = []
        slice_indices = []
        for index in self._selected_slices(voices):
            source = base_voice
            if slices.is_rest(base_voice, index):
                if ignore_rests_in_base_voice:
                    continue
                source = next(voice for voice in voices if not slices.is_rest(voice, index))
            source_pitch = slices.pitch(source, index)
            moment = []
            for other in voices:
                if other == source:
                    continue
                other_pitch = slices.pitch(other, index)
                moment.append(VERTICAL_REST if other_pitch is None else other_pitch - source_pitch)
            moments.append(moment)
            slice_indices.append(index)
        return moments, slice_indices

    def _melodic_motion_between_slices(self, voices: list, slice_indices: list) -> list:
        """Return, per consecutive pair of slices, the melodic motion of each voice."""
        slices = self.piece.note_onset_slices
        motion = []
        for first, second in zip(slice_indices, slice_indices[1:]):
            # A voice resting at both slices is marked REST_TO_NOTE
            motion.append([
                melodic_transition(slices.pitch(voice, first), slices.pitch(voice, second))
                for voice in voices
            ])
        return motion

    # N-gram lists

    def vertical_interval_ngrams(
        self,
        n_value: int,
        voices: Iterable[Voice],
        base_voice: Optional[Voice] = None,
        direction: bool = True,
        wrapping: bool = False,
        generic_intervals: bool = False,
        ignore_rests_in_base_voice: bool = False,
    ) -> list[NGram]:
        """Return vertical interval n-grams between the base voice and the other voices.

        Parameters
        ----------
        n_value : int
            Number of moments in each n-gram
        voices : Iterable[Voice]
            Voices to include, in the order their intervals are listed. When
            the base voice rests, the first voice in this order that is
            sounding is used in its place.
        base_voice : Voice, optional
            Voice the intervals are measured from (default: first voice)
        direction : bool
            Whether the direction of intervals is kept
        wrapping : bool
            Whether intervals are reduced to within an octave
        generic_intervals : bool
            Whether intervals are converted to generic intervals
        ignore_rests_in_base_voice : bool
            If True, slices where the base voice rests are skipped

        Returns
        -------
        list[NGram]
            N-grams of moments holding len(voices) - 1 intervals each. Rests in
            other voices are encoded as VERTICAL_REST.
        """
        self._check_n_value(n_value)
        voices = self._check_voices(voices, minimum=2)
        base_voice = self._check_base_voice(voices, base_voice)
        moments, _ = self._vertical_moments(voices, base_voice, ignore_rests_in_base_voice)
        moments = [
            _transform_moment(moment, direction, wrapping, generic_intervals) for moment in moments
        ]
        ngrams = build_ngrams(moments, n_value)
        logger.debug(
            f"Built {len(ngrams)} vertical interval {n_value}-grams for voices {voices}"
        )
        return ngrams

    def melodic_interval_ngrams(
        self,
        n_value: int,
        voices: Iterable[Voice],
        direction: bool = True,
        wrapping: bool = False,
        generic_intervals: bool = False,
    ) -> list[NGram]:
        """Return melodic interval n-grams built separately within each voice.

        Parameters
        ----------
        n_value : int
            Number of intervals in each n-gram
        voices : Iterable[Voice]
            Voices to include; their n-grams are concatenated in this order
        direction : bool
            Whether the direction of intervals is kept
        wrapping : bool
            Whether intervals are reduced to within an octave
        generic_intervals : bool
            Whether intervals are converted to generic intervals

        Returns
        -------
        list[NGram]
            N-grams whose moments each hold one interval
        """
        self._check_n_value(n_value)
        voices = self._check_voices(voices)
        ngrams = []
        for voice in voices:
            moments = [
                [transform_interval(interval, direction, wrapping, generic_intervals)]
                for interval in self.piece.melodic_intervals[voice]
            ]
            ngrams.extend(build_ngrams(moments, n_value))
        logger.debug(
            f"Built {len(ngrams)} melodic interval {n_value}-grams for voices {voices}"
        )
        return ngrams

    def rhythmic_value_ngrams(self, n_value: int, voices: Iterable[Voice]) -> list[NGram]:
        """Return rhythmic value n-grams built separately within each voice.

        Parameters
        ----------
        n_value : int
            Number of rhythmic values in each n-gram
        voices : Iterable[Voice]
            Voices to include; their n-grams are concatenated in this order

        Returns
        -------
        list[NGram]
            N-grams whose moments each hold one rhythmic value
        """
        self._check_n_value(n_value)
        voices = self._check_voices(voices)
        ngrams = []
        for voice in voices:
            moments = [[value] for value in self.piece.rhythmic_values[voice]]
            ngrams.extend(build_ngrams(moments, n_value))
        logger.debug(
            f"Built {len(ngrams)} rhythmic value {n_value}-grams for voices {voices}"
        )
        return ngrams

    def vertical_and_melodic_interval_ngrams(
        self,
        n_value: int,
        voices: Iterable[Voice],
        base_voice: Optional[Voice] = None,
        direction: bool = True,
        wrapping: bool = False,
        generic_intervals: bool = False,
        ignore_rests_in_base_voice: bool = False,
    ) -> list[TwoDimensionalNGram]:
        """Return n-grams of vertical intervals linked by the melodic motion between them.

        The primary sequence is the same as for vertical_interval_ngrams. The
        secondary sequence holds, for each consecutive pair of primary
        moments, the melodic interval moved by each requested voice (in voice
        order). Motion into a rest is NOTE_TO_REST and motion out of (or
        across) a rest is REST_TO_NOTE.

        Returns
        -------
        list[TwoDimensionalNGram]
            Two-dimensional n-grams with n vertical and n - 1 melodic moments
        """
        self._check_n_value(n_value)
        voices = self._check_voices(voices, minimum=2)
        base_voice = self._check_base_voice(voices, base_voice)
        vertical, slice_indices = self._vertical_moments(
            voices, base_voice, ignore_rests_in_base_voice
        )
        melodic = self._melodic_motion_between_slices(voices, slice_indices)
        ngrams = build_two_dimensional_ngrams(
            [_transform_moment(m, direction, wrapping, generic_intervals) for m in vertical],
            [_transform_moment(m, direction, wrapping, generic_intervals) for m in melodic],
            n_value,
        )
        logger.debug(
            f"Built {len(ngrams)} vertical and melodic interval {n_value}-grams for voices {voices}"
        )
        return ngrams

    def rhythmic_value_and_melodic_interval_ngrams(
        self,
        n_value: int,
        voices: Iterable[Voice],
        direction: bool = True,
        wrapping: bool = False,
        generic_intervals: bool = False,
    ) -> list[TwoDimensionalNGram]:
        """Return n-grams of rhythmic values linked by melodic intervals, per voice.

        Rests are part of the primary sequence, so the secondary sequence marks
        motion into a rest as NOTE_TO_REST and out of a rest as REST_TO_NOTE.

        Returns
        -------
        list[TwoDimensionalNGram]
            Two-dimensional n-grams with n rhythmic and n - 1 melodic moments
        """
        self._check_n_value(n_value)
        voices = self._check_voices(voices)
        ngrams = []
        for voice in voices:
            primary = [[event.rhythmic_value] for event in self.piece.line_events[voice]]
            secondary = [
                [transform_interval(transition, direction, wrapping, generic_intervals)]
                for transition in self.piece.line_transitions[voice]
            ]
            ngrams.extend(build_two_dimensional_ngrams(primary, secondary, n_value))
        logger.debug(
            f"Built {len(ngrams)} rhythmic value and melodic interval {n_value}-grams "
            f"for voices {voices}"
        )
        return ngrams

    # Aggregates

    def vertical_interval_ngram_aggregate(
        self, n_value: int, voices: Iterable[Voice], filtering_threshold: float = 0.0, **kwargs
    ) -> NGramAggregate:
        """Aggregate of vertical_interval_ngrams; keyword arguments are passed on."""
        return NGramAggregate(
            self.vertical_interval_ngrams(n_value, voices, **kwargs), filtering_threshold
        )

    def melodic_interval_ngram_aggregate(
        self, n_value: int, voices: Iterable[Voice], filtering_threshold: float = 0.0, **kwargs
    ) -> NGramAggregate:
        """Aggregate of melodic_interval_ngrams; keyword arguments are passed on."""
        return NGramAggregate(
            self.melodic_interval_ngrams(n_value, voices, **kwargs), filtering_threshold
        )

    def rhythmic_value_ngram_aggregate(
        self, n_value: int, voices: Iterable[Voice], filtering_threshold: float = 0.0
    ) -> NGramAggregate:
        """Aggregate of rhythmic_value_ngrams."""
        return NGramAggregate(self.rhythmic_value_ngrams(n_value, voices), filtering_threshold)

    def vertical_and_melodic_interval_ngram_aggregate(
        self, n_value: int, voices: Iterable[Voice], filtering_threshold: float = 0.0, **kwargs
    ) -> NGramAggregate:
        """Aggregate of vertical_and_melodic_interval_ngrams; keyword arguments are passed on."""
        return NGramAggregate(
            self.vertical_and_melodic_interval_ngrams(n_value, voices, **kwargs),
            filtering_threshold,
        )

    def rhythmic_value_and_melodic_interval_ngram_aggregate(
        self, n_value: int, voices: Iterable[Voice], filtering_threshold: float = 0.0, **kwargs
    ) -> NGramAggregate:
        """Aggregate of rhythmic_value_and_melodic_interval_ngrams; keyword arguments are passed on."""
        return NGramAggregate(
            self.rhythmic_value_and_melodic_interval_ngrams(n_value, voices, **kwargs),
            filtering_threshold,
        )


class NGramAggregateProvider:
    """Builds, on first use, the n-gram aggregates of one piece that feature
    calculators depend on, and caches them for the rest of the extraction.

    Aggregates that cannot exist for the piece (e.g. vertical intervals in a
    piece with a single voice) are empty rather than missing, so callers only
    need to check no_ngrams().
    """

    def __init__(self, piece: Piece, n_value: int = 3, filtering_threshold: float = 0.0):
        """Initialize the provider.

        Args:
            piece (Piece): The piece to build aggregates for
            n_value (int): Number of moments in each n-gram (default: 3)
            filtering_threshold (float): Passed to every aggregate (default: 0.0)
        """
        NGramGenerator._check_n_value(n_value)
        self.piece = piece
        self.n_value = n_value
        self.filtering_threshold = filtering_threshold
        self.generator = NGramGenerator(piece)

    def _empty(self) -> NGramAggregate:
        return NGramAggregate([], self.filtering_threshold)

    def _lowest_and_highest_lines(self) -> Optional[list]:
        if len(self.piece.voices) < 2:
            return None
        return [self.piece.lowest_line, self.piece.highest_line]

    @cached_property
    def melodic_interval_ngram_aggregate(self) -> NGramAggregate:
        if not self.piece.voices:
            return self._empty()
        return self.generator.melodic_interval_ngram_aggregate(
            self.n_value, self.piece.voices, self.filtering_threshold
        )

    @cached_property
    def melodic_interval_ngram_in_lowest_line_aggregate(self) -> NGramAggregate:
        if not self.piece.voices:
            return self._empty()
        return self.generator.melodic_interval_ngram_aggregate(
            self.n_value, [self.piece.lowest_line], self.filtering_threshold
        )

    @cached_property
    def melodic_interval_ngram_in_highest_line_aggregate(self) -> NGramAggregate:
        if not self.piece.voices:
            return self._empty()
        return self.generator.melodic_interval_ngram_aggregate(
            self.n_value, [self.piece.highest_line], self.filtering_threshold
        )

    @cached_property
    def rhythmic_value_ngram_aggregate(self) -> NGramAggregate:
        if not self.piece.voices:
            return self._empty()
        return self.generator.rhythmic_value_ngram_aggregate(
            self.n_value, self.piece.voices, self.filtering_threshold
        )

    @cached_property
    def complete_vertical_interval_ngram_aggregate(self) -> NGramAggregate:
        # Intervals above the lowest line to every other voice
        if len(self.piece.voices) < 2:
            return self._empty()
        return self.generator.vertical_interval_ngram_aggregate(
            self.n_value,
            self.piece.voices_by_average_pitch,
            self.filtering_threshold,
            base_voice=self.piece.lowest_line,
        )

    @cached_property
    def lowest_and_highest_lines_vertical_interval_ngram_aggregate(self) -> NGramAggregate:
        voices = self._lowest_and_highest_lines()
        if voices is None:
            return self._empty()
        return self.generator.vertical_interval_ngram_aggregate(
            self.n_value, voices, self.filtering_threshold, base_voice=voices[0]
        )

    @cached_property
    def lowest_and_highest_lines_vertical_and_melodic_interval_ngram_aggregate(self) -> NGramAggregate:
        voices = self._lowest_and_highest_lines()
        if voices is None:
            return self._empty()
        return self.generator.vertical_and_melodic_interval_ngram_aggregate(
            self.n_value, voices, self.filtering_threshold, base_voice=voices[0]
        )

    @cached_property
    def rhythmic_value_and_melodic_interval_ngram_in_highest_line_aggregate(self) -> NGramAggregate:
        if not self.piece.voices:
            return self._empty()
        return self.generator.rhythmic_value_and_melodic_interval_ngram_aggregate(
            self.n_value, [self.piece.highest_line], self.filtering_threshold
        )
