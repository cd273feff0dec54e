"""
Pitch primitives for Fugato.

Pitch-class arithmetic, note naming and the playable range shared by the
imitation, canon and fugue engines. Pitches are plain MIDI note numbers
(60 = middle C); pitch classes are 0-11 with C = 0.
"""

from typing import Sequence

PLAYABLE_LOW = 21   # A0
PLAYABLE_HIGH = 108  # C8

PITCH_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

# Note name to pitch class mapping
NOTE_TO_PITCH_CLASS = {
    "C": 0, "C#": 1, "Db": 1,
    "D": 2, "D#": 3, "Eb": 3,
    "E": 4, "Fb": 4, "E#": 5,
    "F": 5, "F#": 6, "Gb": 6,
    "G": 7, "G#": 8, "Ab": 8,
    "A": 9, "A#": 10, "Bb": 10,
    "B": 11, "Cb": 11, "B#": 0,
}


def pitch_class(note: int) -> int:
    """Return the pitch class (0-11) of a MIDI note."""
    return note % 12


def circular_distance(a: int, b: int) -> int:
    """Shortest distance in semitones between two pitch classes (0-6)."""
    d = (a - b) % 12
    return min(d, 12 - d)


def signed_pitch_class_offset(source: int, target: int) -> int:
    """
    Signed semitone offset that moves pitch class ``source`` onto ``target``.

    The result lies in -5..6, so a tritone always resolves upward.
    """
    d = (target - source) % 12
    if d > 6:
        d -= 12
    return d


def note_name(note: int) -> str:
    """Return a note name with octave, e.g. 60 -> 'C4'."""
    return f"{PITCH_NAMES[note % 12]}{note // 12 - 1}"


def note_name_to_pitch_class(name: str) -> int:
    """
    Convert a note name such as 'C', 'Db' or 'F#' to a pitch class.

    Raises:
        ValueError: If the name is not a recognised note.
    """
    name = name.strip()
    if name:
        name = name[0].upper() + name[1:]
    if name not in NOTE_TO_PITCH_CLASS:
        raise ValueError(f"Invalid note name: {name}")
    return NOTE_TO_PITCH_CLASS[name]


def parse_note(token: str) -> int:
    """
    Parse a MIDI note given as a number ('60') or a name with octave ('C4').

    A bare name without an octave is placed in octave 4.
    """
    token = token.strip()
    if not token:
        raise ValueError("Empty note")
    if token.lstrip("-").isdigit():
        note = int(token)
    else:
        split = len(token)
        while split > 0 and (token[split - 1].isdigit() or token[split - 1] == "-"):
            split -= 1
        octave = int(token[split:]) if split < len(token) else 4
        note = note_name_to_pitch_class(token[:split]) + (octave + 1) * 12
    if not 0 <= note <= 127:
        raise ValueError(f"Note out of MIDI range: {token}")
    return note


def parse_theme(text: str) -> list[int]:
    """Parse a comma or space separated theme, e.g. '60,62,E4,F4'."""
    tokens = text.replace(",", " ").split()
    return [parse_note(token) for token in tokens]


def clamp_to_range(note: int, low: int = PLAYABLE_LOW, high: int = PLAYABLE_HIGH) -> int:
    """
    Bring a note into [low, high] by whole-octave shifts.

    The pitch class never changes. If the range is narrower than an octave
    and no octave of the note fits, the note ends just above ``low``.
    """
    while note > high:
        note -= 12
    while note < low:
        note += 12
    return note


def clamp_melody(melody: Sequence[int], low: int = PLAYABLE_LOW, high: int = PLAYABLE_HIGH) -> list[int]:
    """Clamp every note of a melody into the playable range."""
    return [clamp_to_range(n, low, high) for n in melody]
