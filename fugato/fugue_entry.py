"""
Fugue entry engine for Fugato.

Builds individual fugal entries (subject statements and tonal answers) and
manual expositions from a list of EntrySpec. An entry is rebuilt degree by
degree inside the mode, with the classical fourth/fifth exchange applied
to the subject's leaps so that the answer stays in the home key.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from .diatonic import (
    adapt_theme_to_mode,
    compress_into_octave,
    diatonic_step_pattern,
    fits_within_octave_span,
    is_diatonic,
    modal_transpose,
    move_by_degrees,
)
from .errors import InvalidEntryIntervalError
from .modes import Mode
from .parts import EntrySpec, Part

logger = logging.getLogger(__name__)

ALLOWED_ENTRY_INTERVALS = frozenset({0, 7, -7, 12, -12})

# Degree leaps of a fourth and a fifth in a heptatonic mode
FOURTH = 3
FIFTH = 4


def is_valid_entry_interval(interval: int) -> bool:
    return interval in ALLOWED_ENTRY_INTERVALS


def compensate_fourths_and_fifths(steps: Sequence[int]) -> list[int]:
    """
    Swap diatonic fourths and fifths in a step sequence.

    A leap of 3 degrees becomes 4 and a leap of 4 becomes 3, keeping the
    direction. Every other step is left alone.

    >>> compensate_fourths_and_fifths([1, 4, -3, 2, -4])
    [1, 3, -4, 2, -3]
    """
    result = []
    for step in steps:
        sign = -1 if step < 0 else 1
        if abs(step) == FOURTH:
            result.append(sign * FIFTH)
        elif abs(step) == FIFTH:
            result.append(sign * FOURTH)
        else:
            result.append(step)
    return result


def prepare_subject(subject: Sequence[int], mode: Mode) -> list[int]:
    """Return the subject unchanged if it is already modal and contained, else adapted."""
    if is_diatonic(subject, mode) and fits_within_octave_span(subject, mode):
        return list(subject)
    return adapt_theme_to_mode(subject, mode)


def create_fugue_entry(subject: Sequence[int], mode: Mode, entry: EntrySpec, entry_index: int = 1) -> Part:
    """
    Build one fugue entry.

    The subject is adapted to the mode if needed, its degree steps go
    through the fourth/fifth exchange, the first note is moved by the
    entry interval inside the mode, and the line is rebuilt by degree
    steps from there. A line that ends up wider than the mode's octave
    span is folded back into it.

    Args:
        subject: MIDI notes of the subject.
        mode: Mode of the fugue.
        entry: Interval (0, ±7 or ±12) and delay of the entry.
        entry_index: Position of the entry, used in error messages.

    Returns:
        The entry as a Part with ``entry.delay`` leading rests.

    Raises:
        InvalidEntryIntervalError: If the interval is not an allowed entry interval.
    """
    if not is_valid_entry_interval(entry.interval):
        raise InvalidEntryIntervalError(entry.interval, entry_index)
    if not subject:
        return Part()

    modal_subject = prepare_subject(subject, mode)
    steps = compensate_fourths_and_fifths(diatonic_step_pattern(modal_subject, mode))

    note = modal_transpose(modal_subject[0], entry.interval, mode)
    melody = [note]
    for step in steps:
        note = move_by_degrees(note, step, mode)
        melody.append(note)

    if not fits_within_octave_span(melody, mode):
        melody = compress_into_octave(melody, mode)
    return Part.from_melody(melody, entry.delay)


@dataclass(frozen=True)
class FugueExposition:
    """
    Result of a manual fugue build.

    Attributes:
        parts: One Part per entry, in entry order.
        first_entry_corrected: True if the first entry's interval was not an
            allowed entry interval and was replaced by 0.
        requested_first_interval: The interval originally asked for by the
            first entry.
    """

    parts: tuple[Part, ...]
    first_entry_corrected: bool = False
    requested_first_interval: int = 0


def build_fugue(subject: Sequence[int], mode: Mode, entries: Sequence[EntrySpec]) -> FugueExposition:
    """
    Build every entry of a manually specified exposition.

    The first entry is lenient: an invalid interval there is replaced by
    0 and reported through ``first_entry_corrected``. Later entries must use
    an allowed interval.

    Raises:
        InvalidEntryIntervalError: If a later entry uses an invalid interval.
    """
    if not entries:
        return FugueExposition(())

    requested = entries[0].interval
    corrected = not is_valid_entry_interval(requested)
    if corrected:
        logger.warning("First entry interval %d is not a fugal interval; using 0", requested)
        entries = [EntrySpec(0, entries[0].delay)] + list(entries[1:])

    parts = tuple(
        create_fugue_entry(subject, mode, entry, index)
        for index, entry in enumerate(entries)
    )
    return FugueExposition(parts, corrected, requested)
