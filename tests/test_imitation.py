"""Tests for fugato/imitation.py and fugato/parts.py."""
from __future__ import annotations

import pytest

from fugato.imitation import imitate, imitate_diatonic, imitate_entries
from fugato.modes import Mode
from fugato.parts import ONSET, REST, EntrySpec, Part, rhythm_with_entry_delay


class TestPart:

    def test_entry_delay_rhythm(self) -> None:
        assert rhythm_with_entry_delay(3, 2) == (REST, REST, ONSET, ONSET, ONSET)

    def test_fractional_delay_floors(self) -> None:
        assert rhythm_with_entry_delay(1, 2.5) == (REST, REST, ONSET)

    def test_onset_count_must_match(self) -> None:
        with pytest.raises(ValueError):
            Part((60, 62), (ONSET,))

    def test_duration_count_must_match(self) -> None:
        with pytest.raises(ValueError):
            Part((60,), (ONSET,), (1.0, 2.0))

    def test_note_events(self) -> None:
        part = Part.from_melody([60, 62], delay=2, durations=[0.5, 1.5])
        assert list(part.note_events()) == [(2.0, 60, 0.5), (2.5, 62, 1.5)]
        assert part.total_beats() == 4.0
        assert part.leading_rests == 2


class TestChromaticImitation:

    def test_preserves_intervals(self, leader: list[int]) -> None:
        part = imitate(leader, 5)
        assert [b - a for a, b in zip(leader, part.melody)] == [5] * len(leader)

    def test_delay_becomes_rests(self) -> None:
        part = imitate([60, 62], 7, delay=4)
        assert part.melody == (67, 69)
        assert part.rhythm == (REST,) * 4 + (ONSET,) * 2

    def test_clamping_shifts_by_octaves(self) -> None:
        part = imitate([100, 105], 12)
        assert part.melody == (100, 105)

    def test_custom_range(self) -> None:
        part = imitate([60, 72], 0, low=60, high=71)
        assert part.melody == (60, 60)

    def test_empty_cantus(self) -> None:
        assert imitate([], 7).is_empty

    def test_multiple_entries(self, leader: list[int]) -> None:
        parts = imitate_entries(leader, [EntrySpec(0, 0), EntrySpec(-12, 4)])
        assert parts[0].melody == tuple(leader)
        assert parts[1].melody[0] == 48
        assert parts[1].leading_rests == 4


class TestDiatonicImitation:

    def test_fifth_above_in_major(self, leader: list[int], c_major: Mode) -> None:
        part = imitate_diatonic(leader, c_major, 7, delay=4)
        assert part.melody == (67, 69, 71, 72, 74, 72, 71, 69, 67)
        assert part.leading_rests == 4

    def test_interval_quality_follows_mode(self, c_major: Mode) -> None:
        assert imitate_diatonic([60, 64], c_major, 2).melody == (62, 65)

    def test_chromatic_cantus_adapted(self, c_major: Mode) -> None:
        part = imitate_diatonic([60, 61, 62], c_major, 0)
        assert all(c_major.contains(n) for n in part.melody)

    def test_empty_cantus(self, c_major: Mode) -> None:
        assert imitate_diatonic([], c_major, 7).is_empty
