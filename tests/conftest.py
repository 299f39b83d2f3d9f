"""
Shared fixtures: small polyphonic pieces with hand-checked moment sequences.
"""

import pytest

from music_ngrams.representations import Piece, notes_from_tuples

LOW = (0, 0)
HIGH = (1, 0)


@pytest.fixture
def two_voice_piece():
    """Two voices sharing four onsets (times in quarter notes).

    The low voice rests from 2 to 3 while the high voice holds its first
    note across the onset at 1.
    """
    return Piece(
        {
            LOW: notes_from_tuples([(48, 0, 1), (50, 1, 1), (52, 3, 1)]),
            HIGH: notes_from_tuples([(60, 0, 2), (64, 2, 1), (65, 3, 1)]),
        },
        piece_id="two_voices",
    )


@pytest.fixture
def alternating_melody():
    """A single voice alternating a whole tone: intervals 2 -2 2 -2 2."""
    pitches = [60, 62, 60, 62, 60, 62]
    return Piece(
        {(0, 0): notes_from_tuples((pitch, i, 1) for i, pitch in enumerate(pitches))},
        piece_id="alternating",
    )
