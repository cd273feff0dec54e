"""Tests for fugato/midi_export.py.

Covers: note timing in a single track, channel assignment, tempo and time
signature placement, program changes and writing a file.
"""
from __future__ import annotations

import mido
import pytest

from fugato.midi_export import _channel_for, part_to_track, parts_to_midi, write_midi
from fugato.parts import ONSET, Part


def notes(track: mido.MidiTrack) -> list[mido.Message]:
    return [m for m in track if m.type in ("note_on", "note_off")]


class TestPartToTrack:

    def test_rests_and_onsets(self) -> None:
        track = part_to_track(Part.from_melody([60, 62], delay=1), name="Voice 1")
        assert track[0].type == "track_name"
        assert [(m.type, m.note, m.time) for m in notes(track)] == [
            ("note_on", 60, 480),
            ("note_off", 60, 480),
            ("note_on", 62, 0),
            ("note_off", 62, 480),
        ]
        assert track[-1].type == "end_of_track"

    def test_durations_scale_ticks(self) -> None:
        track = part_to_track(Part((60,), (ONSET,), (0.5,)), ticks_per_beat=96)
        off = notes(track)[1]
        assert off.time == 48

    def test_velocity_and_channel(self) -> None:
        track = part_to_track(Part.from_melody([67]), channel=3, velocity=100)
        on, off = notes(track)
        assert (on.channel, on.velocity) == (3, 100)
        assert off.velocity == 0

    def test_empty_part(self) -> None:
        track = part_to_track(Part())
        assert [m.type for m in track] == ["end_of_track"]


class TestPartsToMidi:

    @pytest.mark.parametrize("index, channel", [(0, 0), (8, 8), (9, 10), (14, 15), (15, 0)])
    def test_channel_skips_drums(self, index: int, channel: int) -> None:
        assert _channel_for(index) == channel

    def test_tracks_and_meta(self) -> None:
        midi = parts_to_midi([Part.from_melody([60]), Part.from_melody([67], delay=2)], tempo=120)
        assert midi.type == 1
        assert len(midi.tracks) == 2
        first = midi.tracks[0]
        assert first[0].type == "set_tempo"
        assert first[0].tempo == mido.bpm2tempo(120)
        assert first[1].type == "time_signature"
        assert first[1].numerator == 4
        assert not any(m.type == "set_tempo" for m in midi.tracks[1])
        assert notes(midi.tracks[1])[0].channel == 1

    def test_programs(self) -> None:
        midi = parts_to_midi([Part.from_melody([60]), Part.from_melody([64])], programs=[19])
        changes = [m for m in midi.tracks[0] if m.type == "program_change"]
        assert [m.program for m in changes] == [19]
        assert not any(m.type == "program_change" for m in midi.tracks[1])

    def test_write_and_read_back(self, tmp_path, leader: list[int]) -> None:
        path = write_midi(tmp_path / "canon.mid", [Part.from_melody(leader), Part.from_melody(leader, 4)])
        assert path.exists()
        loaded = mido.MidiFile(str(path))
        assert len(loaded.tracks) == 2
        assert len([m for m in loaded.tracks[1] if m.type == "note_on"]) == len(leader)
