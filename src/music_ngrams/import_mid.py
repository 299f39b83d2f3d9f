import logging
import os
from collections import defaultdict, deque

import mido
from mido.midifiles.meta import KeySignatureError

from .moments import PERCUSSION_CHANNEL
from .representations import Note


def _is_note_off(message) -> bool:
    return message.type == "note_off" or (message.type == "note_on" and message.velocity == 0)


def read_notes_by_voice(midi_file: mido.MidiFile) -> dict:
    """Collect the pitched notes of a parsed MIDI file, grouped by voice.

    Parameters
    ----------
    midi_file : mido.MidiFile
        Parsed MIDI file

    Returns
    -------
    dict
        Mapping from (track, channel) to a list of Note objects, with times
        in quarter notes. Channel 10 (index 9) is skipped. Notes still
        sounding at the end of a track are closed at the track's last event.
    """
    ticks_per_beat = midi_file.ticks_per_beat
    notes_by_voice = defaultdict(list)

    for track_index, track in enumerate(midi_file.tracks):
        tick = 0
        # Overlapping notes of the same pitch are closed first-in first-out
        sounding = defaultdict(deque)
        for message in track:
            tick += message.time
            if message.type not in ("note_on", "note_off"):
                continue
            if message.channel == PERCUSSION_CHANNEL:
                continue
            key = (message.channel, message.note)
            if _is_note_off(message):
                if sounding[key]:
                    start = sounding[key].popleft()
                    notes_by_voice[(track_index, message.channel)].append(
                        Note(message.note, start / ticks_per_beat, (tick - start) / ticks_per_beat)
                    )
            else:
                sounding[key].append(tick)

        for (channel, pitch), starts in sounding.items():
            for start in starts:
                notes_by_voice[(track_index, channel)].append(
                    Note(pitch, start / ticks_per_beat, (tick - start) / ticks_per_beat)
                )

    for notes in notes_by_voice.values():
        notes.sort(key=lambda note: (note.onset, note.pitch))
    return dict(notes_by_voice)


def import_midi(midi_file: str) -> dict:
    """Import a MIDI file and return a dictionary with its notes by voice.

    Parameters
    ----------
    midi_file : str
        Path to the MIDI file

    Returns
    -------
    dict or None
        Dictionary containing:
        - ID: Filename of the MIDI file
        - notes: Mapping from (track, channel) to a list of Note objects
        Returns None if the file cannot be imported or has no pitched notes
    """
    logger = logging.getLogger("music_ngrams")

    try:
        midi_data = mido.MidiFile(midi_file)
        notes_by_voice = read_notes_by_voice(midi_data)

        if not notes_by_voice:
            logger.warning(f"No pitched notes found in {midi_file}")
            return None

        return {
            "ID": os.path.basename(midi_file),
            "notes": notes_by_voice,
        }

    except (KeySignatureError, ValueError, IOError, EOFError) as e:
        logger.warning(f"Could not import {midi_file}: {str(e)}")
        return None

