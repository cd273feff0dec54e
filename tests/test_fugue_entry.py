"""Tests for fugato/fugue_entry.py.

Covers: entry-interval validation, fourth/fifth compensation, tonal
answers and the lenient first entry of build_fugue.
"""
from __future__ import annotations

import doctest

import pytest

import fugato.fugue_entry
from fugato.errors import InvalidEntryIntervalError
from fugato.fugue_entry import (
    build_fugue,
    compensate_fourths_and_fifths,
    create_fugue_entry,
    is_valid_entry_interval,
    prepare_subject,
)
from fugato.modes import Mode
from fugato.parts import EntrySpec


def test_docstring_examples() -> None:
    failures, _ = doctest.testmod(fugato.fugue_entry)
    assert failures == 0


class TestEntryIntervals:

    @pytest.mark.parametrize("interval", [0, 7, -7, 12, -12])
    def test_allowed(self, interval: int) -> None:
        assert is_valid_entry_interval(interval)

    @pytest.mark.parametrize("interval", [5, -5, 2, 24, 1])
    def test_rejected(self, interval: int) -> None:
        assert not is_valid_entry_interval(interval)


class TestCompensation:

    def test_swaps_fourths_and_fifths(self) -> None:
        assert compensate_fourths_and_fifths([3, -3, 4, -4]) == [4, -4, 3, -3]

    def test_other_steps_pass_through(self) -> None:
        assert compensate_fourths_and_fifths([0, 1, -2, 5, 7, -7]) == [0, 1, -2, 5, 7, -7]


class TestCreateFugueEntry:

    def test_answer_at_the_fifth(self, leader: list[int], c_major: Mode) -> None:
        part = create_fugue_entry(leader, c_major, EntrySpec(7, 4))
        assert part.melody == (67, 69, 71, 72, 74, 72, 71, 69, 67)
        assert part.leading_rests == 4

    def test_tonal_answer_exchanges_fifth_for_fourth(self, c_major: Mode) -> None:
        # C-G is answered by G-C rather than G-D
        assert create_fugue_entry([60, 67], c_major, EntrySpec(7)).melody == (67, 72)

    def test_octave_entry(self, leader: list[int], c_major: Mode) -> None:
        part = create_fugue_entry(leader, c_major, EntrySpec(-12))
        assert part.melody == tuple(n - 12 for n in leader)

    def test_result_stays_in_mode(self, c_minor: Mode) -> None:
        part = create_fugue_entry([60, 62, 63, 65, 67], c_minor, EntrySpec(7))
        assert all(c_minor.contains(n) for n in part.melody)
        assert max(part.melody) - min(part.melody) <= c_minor.octave_span

    def test_invalid_interval_raises(self, leader: list[int], c_major: Mode) -> None:
        with pytest.raises(InvalidEntryIntervalError) as info:
            create_fugue_entry(leader, c_major, EntrySpec(5), entry_index=1)
        assert info.value.interval == 5
        assert info.value.entry_index == 1

    def test_empty_subject(self, c_major: Mode) -> None:
        assert create_fugue_entry([], c_major, EntrySpec(7)).is_empty

    def test_prepare_subject_keeps_modal_theme(self, leader: list[int], c_major: Mode) -> None:
        assert prepare_subject(leader, c_major) == leader


class TestBuildFugue:

    def test_entries_in_order(self, leader: list[int], c_major: Mode) -> None:
        exposition = build_fugue(leader, c_major, [EntrySpec(0, 0), EntrySpec(7, 4), EntrySpec(-12, 8)])
        assert len(exposition.parts) == 3
        assert [p.leading_rests for p in exposition.parts] == [0, 4, 8]
        assert not exposition.first_entry_corrected

    def test_invalid_first_entry_corrected(self, leader: list[int], c_major: Mode) -> None:
        exposition = build_fugue(leader, c_major, [EntrySpec(5, 2)])
        assert exposition.first_entry_corrected
        assert exposition.requested_first_interval == 5
        assert exposition.parts[0].melody == tuple(leader)
        assert exposition.parts[0].leading_rests == 2

    def test_invalid_later_entry_raises(self, leader: list[int], c_major: Mode) -> None:
        with pytest.raises(InvalidEntryIntervalError) as info:
            build_fugue(leader, c_major, [EntrySpec(0, 0), EntrySpec(5, 4)])
        assert info.value.entry_index == 1

    def test_no_entries(self, leader: list[int], c_major: Mode) -> None:
        assert build_fugue(leader, c_major, []).parts == ()
