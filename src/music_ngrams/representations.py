"""
This module contains classes to represent a polyphonic piece as separate voices
and to derive from it the moment sequences that n-grams are built from.

A voice is a (track, channel) pair. Each voice is reduced to a melodic line by
keeping the highest pitch attacked at each onset, so the highest note is
always treated as the melody. Notes on channel 10 (index 9) are unpitched
percussion and are ignored.
"""

from dataclasses import dataclass
from functools import cached_property
from typing import Iterable, NamedTuple, Optional

import numpy as np

from .moments import (
    NOTE_TO_REST,
    PERCUSSION_CHANNEL,
    REST_TO_NOTE,
    RHYTHMIC_VALUES,
    quantize_rhythmic_value,
)

Voice = tuple[int, int]

# Gaps shorter than this many quarter notes are not treated as rests
MINIMUM_REST_DURATION = RHYTHMIC_VALUES[0] / 2


@dataclass(frozen=True)
class Note:
    """A pitched note, with times measured in quarter notes.

    Attributes:
        pitch (int): MIDI pitch
        onset (float): Start time in quarter notes
        duration (float): Duration in quarter notes
    """

    pitch: int
    onset: float
    duration: float

    @property
    def end(self) -> float:
        return self.onset + self.duration


class LineEvent(NamedTuple):
    """A note (pitch set) or a rest (pitch None) in a melodic line."""

    pitch: Optional[int]
    rhythmic_value: float

    @property
    def is_rest(self) -> bool:
        return self.pitch is None


def melodic_transition(first: Optional[int], second: Optional[int]):
    """Return the melodic motion between two pitches, either of which may be a rest.

    >>> melodic_transition(60, 62)
    2
    >>> melodic_transition(60, None)
    Rest(code=-128)
    >>> melodic_transition(None, 60)
    Rest(code=128)
    """
    if first is not None and second is not None:
        return second - first
    if first is not None:
        return NOTE_TO_REST
    return REST_TO_NOTE


@dataclass
class NoteOnsetSlices:
    """The onset slice timeline shared by all voices.

    A slice begins at every time where at least one voice attacks a note.
    For each voice and slice the highest sounding pitch is recorded (held
    notes included), or None if the voice is resting, together with whether
    the voice attacks a new note at that slice.

    Attributes:
        voices (list[Voice]): Voices on the timeline
        onsets (list[float]): Start time of each slice in quarter notes
        pitches (dict[Voice, list[Optional[int]]]): Sounding pitch per slice
        new_onsets (dict[Voice, list[bool]]): New onset flag per slice
    """

    voices: list
    onsets: list
    pitches: dict
    new_onsets: dict

    def __post_init__(self):
        """Validate the timeline after initialization."""
        self.voices = [tuple(voice) for voice in self.voices]
        if len(set(self.voices)) != len(self.voices):
            raise ValueError(f"voices must not contain duplicates, got {self.voices}")
        for voice in self.voices:
            if voice not in self.pitches or voice not in self.new_onsets:
                raise ValueError(f"Missing slice data for voice {voice}")
            if len(self.pitches[voice]) != len(self.onsets):
                raise ValueError(
                    f"Voice {voice} has {len(self.pitches[voice])} pitches for "
                    f"{len(self.onsets)} slices"
                )
            if len(self.new_onsets[voice]) != len(self.onsets):
                raise ValueError(
                    f"Voice {voice} has {len(self.new_onsets[voice])} onset flags for "
                    f"{len(self.onsets)} slices"
                )
            for index, (pitch, is_new) in enumerate(
                zip(self.pitches[voice], self.new_onsets[voice])
            ):
                if is_new and pitch is None:
                    raise ValueError(
                        f"Voice {voice} has a new onset but no pitch at slice {index}"
                    )

    @property
    def number_of_slices(self) -> int:
        return len(self.onsets)

    def pitch(self, voice: Voice, slice_index: int) -> Optional[int]:
        return self.pitches[voice][slice_index]

    def is_new_onset(self, voice: Voice, slice_index: int) -> bool:
        return self.new_onsets[voice][slice_index]

    def is_rest(self, voice: Voice, slice_index: int) -> bool:
        return self.pitches[voice][slice_index] is None


class Piece:
    """A polyphonic piece separated into voices.

    Attributes:
        piece_id (str): Identifier of the piece, usually the file name
        voices (list[Voice]): Pitched voices with at least one note, sorted
        notes_by_voice (dict[Voice, list[Note]]): Notes of each voice sorted by onset
    """

    def __init__(self, notes_by_voice: dict, piece_id: Optional[str] = None):
        """Initialize a Piece from notes grouped by voice.

        Args:
            notes_by_voice (dict): Mapping from (track, channel) to an iterable
                of Note objects
            piece_id (str, optional): Identifier of the piece
        """
        self.piece_id = piece_id
        self.notes_by_voice = {}
        for voice, notes in notes_by_voice.items():
            voice = tuple(voice)
            if len(voice) != 2:
                raise ValueError(f"A voice must be a (track, channel) pair, got {voice}")
            if voice[1] == PERCUSSION_CHANNEL:
                continue
            notes = sorted(notes, key=lambda note: (note.onset, -note.pitch))
            if notes:
                self.notes_by_voice[voice] = notes
        self.voices = sorted(self.notes_by_voice)

    @classmethod
    def from_midi_data(cls, midi_data: dict) -> "Piece":
        """Create a Piece from the dictionary returned by import_midi."""
        return cls(midi_data["notes"], piece_id=midi_data.get("ID"))

    def __repr__(self) -> str:
        return f"Piece(piece_id={self.piece_id!r}, voices={self.voices})"

    @cached_property
    def melodic_lines(self) -> dict:
        """The highest note attacked at each onset, for every voice.

        Returns:
            dict[Voice, list[Note]]: Melodic line of each voice
        """
        lines = {}
        for voice in self.voices:
            line = []
            for note in self.notes_by_voice[voice]:
                # Notes are sorted by onset then descending pitch
                if line and line[-1].onset == note.onset:
                    continue
                line.append(note)
            lines[voice] = line
        return lines

    @cached_property
    def melodic_intervals(self) -> dict:
        """Signed semitone intervals between consecutive notes of each line.

        Returns:
            dict[Voice, list[int]]: Melodic intervals of each voice
        """
        return {
            voice: [second.pitch - first.pitch for first, second in zip(line, line[1:])]
            for voice, line in self.melodic_lines.items()
        }

    @cached_property
    def rhythmic_values(self) -> dict:
        """Quantized rhythmic value of every note of each line.

        Returns:
            dict[Voice, list[float]]: Rhythmic values of each voice
        """
        return {
            voice: [quantize_rhythmic_value(note.duration) for note in line]
            for voice, line in self.melodic_lines.items()
        }

    @cached_property
    def line_events(self) -> dict:
        """Notes and rests of each line, in order.

        Returns:
            dict[Voice, list[LineEvent]]: Events of each voice
        """
        events = {}
        for voice, line in self.melodic_lines.items():
            voice_events = []
            for i, note in enumerate(line):
                voice_events.append(LineEvent(note.pitch, quantize_rhythmic_value(note.duration)))
                if i + 1 < len(line):
                    gap = line[i + 1].onset - note.end
                    if gap >= MINIMUM_REST_DURATION:
                        voice_events.append(LineEvent(None, quantize_rhythmic_value(gap)))
            events[voice] = voice_events
        return events

    @cached_property
    def line_transitions(self) -> dict:
        """Melodic motion between consecutive events of each line, rests marked.

        Returns:
            dict[Voice, list]: One transition fewer than line_events per voice
        """
        return {
            voice: [
                melodic_transition(first.pitch, second.pitch)
                for first, second in zip(events, events[1:])
            ]
            for voice, events in self.line_events.items()
        }

    @cached_property
    def note_onset_slices(self) -> NoteOnsetSlices:
        """Build the onset slice timeline for all pitched voices."""
        onsets = sorted({note.onset for voice in self.voices for note in self.notes_by_voice[voice]})
        pitches = {}
        new_onsets = {}
        for voice in self.voices:
            # Notes are sorted by onset; each is attacked once, then held while
            # its end lies after the slice
            notes = self.notes_by_voice[voice]
            next_note = 0
            held = []
            voice_pitches = []
            voice_new_onsets = []
            for onset in onsets:
                attacked = []
                while next_note < len(notes) and notes[next_note].onset <= onset:
                    attacked.append(notes[next_note])
                    next_note += 1
                held = [note for note in held if note.end > onset]
                sounding = [note.pitch for note in held] + [note.pitch for note in attacked]
                held.extend(attacked)
                voice_pitches.append(max(sounding) if sounding else None)
                voice_new_onsets.append(bool(attacked))
            pitches[voice] = voice_pitches
            new_onsets[voice] = voice_new_onsets
        return NoteOnsetSlices(
            voices=list(self.voices), onsets=onsets, pitches=pitches, new_onsets=new_onsets
        )

    @cached_property
    def average_pitches(self) -> dict:
        return {
            voice: float(np.mean([note.pitch for note in self.notes_by_voice[voice]]))
            for voice in self.voices
        }

    @cached_property
    def voices_by_average_pitch(self) -> list:
        """Voices ordered from the lowest to the highest average pitch."""
        return sorted(self.voices, key=lambda voice: self.average_pitches[voice])

    @property
    def lowest_line(self) -> Optional[Voice]:
        voices = self.voices_by_average_pitch
        return voices[0] if voices else None

    @property
    def highest_line(self) -> Optional[Voice]:
        voices = self.voices_by_average_pitch
        return voices[-1] if voices else None


def notes_from_tuples(notes: Iterable[tuple]) -> list[Note]:
    """Build Note objects from (pitch, onset, duration) tuples.

    >>> notes_from_tuples([(60, 0, 1), (62, 1, 0.5)])[1]
    Note(pitch=62, onset=1.0, duration=0.5)
    """
    return [Note(int(pitch), float(onset), float(duration)) for pitch, onset, duration in notes]
