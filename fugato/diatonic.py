"""
Diatonic transform utilities for Fugato.

Scale-degree arithmetic on top of Mode: snapping notes into a mode,
keeping melodies inside the mode's octave span, and moving notes by scale
degrees rather than by semitones.

Degrees are counted from the mode's tonic. An "absolute degree" also
carries the octave, so that absolute_degree(note) // degree_count is the
octave above pitch class 0 and the remainder is the degree within it.
"""

from typing import Sequence

from .modes import Mode
from .pitch import circular_distance, signed_pitch_class_offset

# Nearest diatonic size for each chromatic interval within an octave
_SEMITONES_TO_DEGREES = (0, 1, 1, 2, 2, 3, 3, 4, 5, 5, 6, 6)


def build_scale_degrees(mode: Mode) -> list[int]:
    """
    Return the degree to pitch-class table for a mode.

    The table lists every degree followed by the tonic again as the octave,
    so a heptatonic mode yields eight entries.

    >>> build_scale_degrees(Mode("Ionian", (2, 2, 1, 2, 2, 2, 1), 0))
    [0, 2, 4, 5, 7, 9, 11, 0]
    """
    return list(mode.pitch_classes) + [mode.tonic]


def nearest_pitch_class_in_set(pitch: int, pitch_classes: Sequence[int]) -> int:
    """
    Return the member of ``pitch_classes`` closest to ``pitch``.

    Distance is measured around the pitch-class circle. On a tie the
    candidate listed first wins.

    Raises:
        ValueError: If ``pitch_classes`` is empty.
    """
    if not pitch_classes:
        raise ValueError("Cannot snap to an empty pitch-class set")
    pc = pitch % 12
    best = pitch_classes[0] % 12
    best_distance = circular_distance(pc, best)
    for candidate in pitch_classes[1:]:
        distance = circular_distance(pc, candidate % 12)
        if distance < best_distance:
            best, best_distance = candidate % 12, distance
    return best


def snap_to_mode(note: int, mode: Mode) -> int:
    """
    Move a MIDI note onto the nearest pitch of the mode, keeping its register.

    Notes already in the mode are returned unchanged.
    """
    target = nearest_pitch_class_in_set(note, mode.pitch_classes)
    snapped = note + signed_pitch_class_offset(note % 12, target)
    if snapped > 127:
        snapped -= 12
    elif snapped < 0:
        snapped += 12
    return snapped


def is_diatonic(melody: Sequence[int], mode: Mode) -> bool:
    """Return True if every note's pitch class belongs to the mode."""
    pitch_classes = set(mode.pitch_classes)
    return all(note % 12 in pitch_classes for note in melody)


def fits_within_octave_span(melody: Sequence[int], mode: Mode) -> bool:
    """Return True if the melody's range does not exceed the mode's octave span."""
    if not melody:
        return True
    return max(melody) - min(melody) <= mode.octave_span


def _tonic_floor(note: int, mode: Mode) -> int:
    """The tonic pitch at or below ``note``."""
    base = note - (note - mode.tonic) % 12
    if base < 0:
        base += 12
    if base + mode.octave_span > 127:
        base -= 12
    return base


def compress_into_octave(melody: Sequence[int], mode: Mode) -> list[int]:
    """
    Fold a melody into one octave span above the tonic it starts from.

    Each note moves by whole octaves only, so pitch classes are preserved.
    The anchor is the tonic at or below the first note.
    """
    if not melody:
        return []
    base = _tonic_floor(melody[0], mode)
    top = base + mode.octave_span
    result = []
    for note in melody:
        while note > top:
            note -= 12
        while note < base:
            note += 12
        result.append(note)
    return result


def adapt_theme_to_mode(theme: Sequence[int], mode: Mode) -> list[int]:
    """
    Make a theme diatonic in ``mode`` and fit it inside the mode's octave span.

    Every note is snapped to the nearest in-scale pitch class; if the result
    still spans more than the octave span it is compressed toward the tonic.

    Args:
        theme: MIDI notes.
        mode: Target mode.

    Returns:
        A new list of MIDI notes, diatonic in the mode.
    """
    snapped = [snap_to_mode(note, mode) for note in theme]
    if fits_within_octave_span(snapped, mode):
        return snapped
    return compress_into_octave(snapped, mode)


def find_nearest_degree(pitch: int, scale_degrees: Sequence[int]) -> int:
    """
    Return the index of the scale degree nearest to ``pitch``.

    ``scale_degrees`` is a table from build_scale_degrees(); its trailing
    octave entry is ignored so the result is always a degree index
    (0..n-1). Ties resolve to the lower degree.
    """
    degrees = list(scale_degrees)
    if len(degrees) > 1 and degrees[-1] == degrees[0]:
        degrees = degrees[:-1]
    pc = pitch % 12
    best_degree = 0
    best_distance = 12
    for degree, degree_pc in enumerate(degrees):
        distance = circular_distance(pc, degree_pc)
        if distance < best_distance:
            best_degree, best_distance = degree, distance
    return best_degree


def modal_transpose(pitch: int, semitones: int, mode: Mode) -> int:
    """
    Transpose a pitch chromatically, then snap the result into the mode.

    This is how fugue entries find their starting note: the requested
    interval is honoured as closely as the mode allows.
    """
    return snap_to_mode(pitch + semitones, mode)


def absolute_degree(note: int, mode: Mode) -> int:
    """
    Return the octave-aware degree number of a note.

    Notes outside the mode are first snapped to it.
    """
    rel = snap_to_mode(note, mode) - mode.tonic
    octave, within = divmod(rel, 12)
    degree = find_nearest_degree(within, mode.intervals)
    return octave * mode.degree_count + degree


def pitch_at_degree(degree: int, mode: Mode) -> int:
    """Return the MIDI note for an absolute degree (inverse of absolute_degree)."""
    octave, within = divmod(degree, mode.degree_count)
    return mode.tonic + 12 * octave + mode.intervals[within]


def move_by_degrees(note: int, steps: int, mode: Mode) -> int:
    """Move a note up or down by a number of scale degrees."""
    return pitch_at_degree(absolute_degree(note, mode) + steps, mode)


def map_melody_to_degrees(melody: Sequence[int], mode: Mode) -> list[int]:
    """Return the degree index (0..n-1) of every note in the melody."""
    table = build_scale_degrees(mode)
    return [find_nearest_degree(note, table) for note in melody]


def diatonic_step_pattern(melody: Sequence[int], mode: Mode) -> list[int]:
    """
    Return the successive degree deltas of a melody.

    Octave leaps count as a full cycle of degrees, so C4 to C5 in a
    heptatonic mode is a step of 7.
    """
    degrees = [absolute_degree(note, mode) for note in melody]
    return [b - a for a, b in zip(degrees, degrees[1:])]


def semitones_to_degrees(semitones: int, degree_count: int = 7) -> int:
    """
    Convert a chromatic interval to the nearest diatonic interval size.

    For heptatonic modes a fifth (7) is 4 degrees and an octave (12) is 7.
    Other modes scale the octave to their own degree count.
    """
    sign = -1 if semitones < 0 else 1
    octaves, within = divmod(abs(semitones), 12)
    steps = _SEMITONES_TO_DEGREES[within]
    if degree_count != 7:
        steps = round(within * degree_count / 12)
    return sign * (octaves * degree_count + steps)


def transpose_diatonic(melody: Sequence[int], steps: int, mode: Mode, semitones: int) -> list[int]:
    """
    Move every note of a melody by ``steps`` scale degrees.

    Notes that are not in the mode keep their chromatic colour and are
    moved by ``semitones`` instead.
    """
    result = []
    for note in melody:
        if mode.contains(note):
            result.append(move_by_degrees(note, steps, mode))
        else:
            result.append(note + semitones)
    return result


def invert_diatonic(melody: Sequence[int], axis: int, mode: Mode) -> list[int]:
    """Mirror a melody around ``axis`` in scale degrees rather than semitones."""
    pivot = absolute_degree(axis, mode)
    return [pitch_at_degree(2 * pivot - absolute_degree(note, mode), mode) for note in melody]
