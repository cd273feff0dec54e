"""Tests for fugato/fugue.py.

Covers: FugueParams parsing, the classic section thresholds, every
architecture's layout, transformation scopes inside a fugue, the
fundamental bass plan and flattening to Parts.
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from fugato.canon import StrictCanon
from fugato.errors import InvalidEntryIntervalError
from fugato.fugue import (
    ARCHITECTURES,
    AdaptiveFugue,
    AdditiveFugue,
    ClassicFugue,
    HocketedFugue,
    MetaFugue,
    MirrorFugue,
    PolyrhythmicFugue,
    RecursiveFugue,
    RotationalFugue,
    SubtractiveFugue,
    fugue_to_parts,
    generate_fugue,
    parse_fugue_params,
    plan_fundamental_bass,
)
from fugato.modes import Mode
from fugato.parts import VoiceRole
from fugato.transforms import Augmentation, Retrograde


def roles(section) -> set[VoiceRole]:
    return {entry.role for entry in section.voices}


# ---------------------------------------------------------------------------
# Params
# ---------------------------------------------------------------------------


class TestFugueParams:

    def test_parse_dict(self) -> None:
        params = parse_fugue_params({
            "architecture": "mirror",
            "subject": [60, 62, 64],
            "transformations": [{"kind": "retrograde", "scope": "subject"}],
        })
        assert isinstance(params, MirrorFugue)
        assert params.voices == 4
        assert isinstance(params.transformations[0], Retrograde)

    def test_parse_json(self) -> None:
        params = parse_fugue_params('{"architecture": "recursive", "subject": [60], "depth": 3}')
        assert isinstance(params, RecursiveFugue)
        assert params.depth == 3

    def test_unknown_architecture(self) -> None:
        with pytest.raises(ValidationError):
            parse_fugue_params({"architecture": "spiral", "subject": [60]})

    def test_classic_voice_limit(self) -> None:
        with pytest.raises(ValidationError):
            ClassicFugue(subject=(60,), voices=6)

    def test_stretto_density_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ClassicFugue(subject=(60,), stretto_density=1.5)

    def test_every_architecture_described(self) -> None:
        assert len(ARCHITECTURES) == 10


# ---------------------------------------------------------------------------
# Classic fugue
# ---------------------------------------------------------------------------


class TestClassicFugue:

    def test_sections_at_sixteen_measures(self, leader: list[int], c_major: Mode) -> None:
        result = generate_fugue(ClassicFugue(subject=leader, mode=c_major))
        assert result.section_names == ["Exposition", "Episode 1", "Development", "Recapitulation"]
        assert [s.start_measure for s in result.sections] == [0, 5, 11, 14]
        assert result.total_measures == 18
        assert result.key == 60

    @pytest.mark.parametrize(
        "measures, names",
        [
            (4, ["Exposition", "Recapitulation"]),
            (12, ["Exposition", "Episode 1", "Recapitulation"]),
            (20, ["Exposition", "Episode 1", "Development", "Recapitulation"]),
        ],
    )
    def test_measure_thresholds(self, measures: int, names: list[str], leader: list[int]) -> None:
        result = generate_fugue(ClassicFugue(subject=leader, total_measures=measures))
        assert result.section_names == names

    def test_stretto_needs_density_and_length(self, leader: list[int]) -> None:
        dense = generate_fugue(ClassicFugue(subject=leader, total_measures=20, stretto_density=0.5))
        assert "Stretto" in dense.section_names
        assert dense.stretto_entries == 2
        threshold = generate_fugue(ClassicFugue(subject=leader, total_measures=20, stretto_density=0.3))
        assert "Stretto" not in threshold.section_names

    def test_exposition_answers_are_tonal(self, leader: list[int], c_major: Mode) -> None:
        exposition = generate_fugue(ClassicFugue(subject=leader, mode=c_major)).section("Exposition")
        subject, answer, third = exposition.voices
        assert subject.role == VoiceRole.SUBJECT
        assert answer.role == VoiceRole.ANSWER
        assert answer.material == (67, 69, 71, 72, 74, 72, 71, 69, 67)
        assert answer.transposition == 7
        assert [e.start_beat for e in exposition.voices] == [0.0, 4.0, 8.0]
        assert third.material == tuple(leader)

    def test_chromatic_answer_without_mode(self) -> None:
        exposition = generate_fugue(ClassicFugue(subject=(60, 61, 63), voices=2)).section("Exposition")
        assert exposition.voices[1].material == (67, 68, 70)

    def test_countersubject_in_contrary_motion(self, leader: list[int], c_major: Mode) -> None:
        exposition = generate_fugue(
            ClassicFugue(subject=leader, mode=c_major, countersubject=True)
        ).section("Exposition")
        counters = [e for e in exposition.voices if e.role == VoiceRole.COUNTERSUBJECT]
        assert [e.voice for e in counters] == [1, 2]
        assert counters[0].material == (65, 64, 62, 60, 59, 60, 62, 64, 65)
        assert counters[0].start_beat == 9.0

    def test_invalid_entry_interval(self, leader: list[int]) -> None:
        with pytest.raises(InvalidEntryIntervalError):
            generate_fugue(ClassicFugue(subject=leader, entry_interval=5))

    def test_empty_subject(self) -> None:
        result = generate_fugue(ClassicFugue(subject=()))
        assert result.sections == ()
        assert result.total_measures == 0

    def test_not_a_fugue_params_model(self) -> None:
        with pytest.raises(TypeError):
            generate_fugue(StrictCanon())


class TestTransformationsInFugue:

    def test_scope_limits_retrograde_to_subjects(self) -> None:
        params = ClassicFugue(subject=(60, 62, 64, 67), voices=2, transformations=(Retrograde(scope="subject"),))
        subject, answer = generate_fugue(params).section("Exposition").voices
        assert subject.material == (67, 64, 62, 60)
        assert answer.material == (67, 69, 71, 74)

    def test_augmentation_lengthens_sections(self) -> None:
        plain = generate_fugue(ClassicFugue(subject=(60, 62, 64, 67)))
        augmented = generate_fugue(ClassicFugue(subject=(60, 62, 64, 67), transformations=(Augmentation(),)))
        assert plain.section("Exposition").measures == 3
        assert augmented.section("Exposition").measures == 4
        assert augmented.section("Exposition").voices[0].durations == (2.0,) * 4


# ---------------------------------------------------------------------------
# Other architectures
# ---------------------------------------------------------------------------


class TestArchitectures:

    def test_additive(self, leader: list[int]) -> None:
        result = generate_fugue(AdditiveFugue(subject=leader, voices=3))
        assert result.section_names == ["Entry 1", "Entry 2", "Entry 3", "Recapitulation"]
        assert [len(s.voices) for s in result.sections] == [1, 2, 3, 3]
        assert result.section("Entry 2").voices[-1].role == VoiceRole.ANSWER

    def test_subtractive(self, leader: list[int]) -> None:
        result = generate_fugue(SubtractiveFugue(subject=leader, voices=4))
        assert result.section_names == ["Exposition", "Reduction to 3 voices", "Reduction to 2 voices", "Coda"]
        assert len(result.section("Coda").voices) == 1

    def test_rotational(self, leader: list[int]) -> None:
        result = generate_fugue(RotationalFugue(subject=leader, voices=3))
        assert len(result.sections) == 3
        first_voice_roles = [s.voices[0].role for s in result.sections]
        assert first_voice_roles == [VoiceRole.SUBJECT, VoiceRole.ANSWER, VoiceRole.COUNTERSUBJECT]
        for section in result.sections:
            assert roles(section) == {VoiceRole.SUBJECT, VoiceRole.ANSWER, VoiceRole.COUNTERSUBJECT}

    def test_mirror_pairs(self, leader: list[int]) -> None:
        result = generate_fugue(MirrorFugue(subject=leader, voices=4))
        assert result.section_names == ["Mirror Exposition", "Episode 1", "Mirror Recapitulation"]
        entries = {e.voice: e for e in result.section("Mirror Exposition").voices}
        assert entries[2].material == tuple(120 - n for n in leader)
        assert entries[1].start_beat == entries[2].start_beat

    def test_mirror_odd_voices(self, leader: list[int]) -> None:
        exposition = generate_fugue(MirrorFugue(subject=leader, voices=3)).section("Mirror Exposition")
        assert sorted(e.voice for e in exposition.voices) == [1, 2, 3]

    def test_hocket_distributes_notes(self, leader: list[int]) -> None:
        hocket = generate_fugue(HocketedFugue(subject=leader, voices=3)).section("Hocket")
        assert len(hocket.voices) == 2 * len(leader)
        assert [e.voice for e in hocket.voices[:4]] == [1, 2, 3, 1]
        assert all(len(e.material) == 1 for e in hocket.voices)
        assert [e.start_beat for e in hocket.voices[:3]] == [0.0, 1.0, 2.0]

    def test_polyrhythm_scales_durations(self, leader: list[int]) -> None:
        section = generate_fugue(PolyrhythmicFugue(subject=leader, voices=2)).section("Polyrhythm")
        assert section.voices[0].durations == (1.0,) * len(leader)
        assert section.voices[1].durations == pytest.approx((4 / 3,) * len(leader))

    def test_recursive_levels(self, leader: list[int]) -> None:
        result = generate_fugue(RecursiveFugue(subject=leader, depth=2))
        assert result.section_names == ["Exposition (level 1)", "Exposition (level 2)", "Recapitulation"]
        assert generate_fugue(RecursiveFugue(subject=leader, depth=1)).section_names == [
            "Exposition (level 1)", "Recapitulation"
        ]

    def test_meta_expositions(self, leader: list[int]) -> None:
        meta = generate_fugue(MetaFugue(subject=leader, voices=3)).section("Meta Exposition")
        assert len(meta.voices) == 6
        subject, answer = meta.voices[:2]
        assert answer.start_beat == subject.end_beat == 9.0

    def test_adaptive_low_complexity_matches_classic_layout(self, leader: list[int]) -> None:
        result = generate_fugue(AdaptiveFugue(subject=leader, complexity=0.0, seed=1))
        assert result.section_names == ["Exposition", "Episode 1", "Development", "Recapitulation"]

    def test_adaptive_high_complexity(self, leader: list[int], c_major: Mode) -> None:
        result = generate_fugue(AdaptiveFugue(subject=leader, mode=c_major, complexity=1.0, seed=4))
        assert "Stretto" in result.section_names
        assert VoiceRole.COUNTERSUBJECT in roles(result.section("Exposition"))

    def test_adaptive_reproducible(self, leader: list[int], c_major: Mode) -> None:
        params = AdaptiveFugue(subject=leader, mode=c_major, complexity=0.7, seed=3)
        assert generate_fugue(params) == generate_fugue(params)


# ---------------------------------------------------------------------------
# Fundamental bass
# ---------------------------------------------------------------------------


class TestFundamentalBass:

    def test_stations_for_long_fugue(self, c_major: Mode) -> None:
        plan = plan_fundamental_bass(60, 16, c_major)
        assert [s.roman for s in plan.stations] == [
            "I", "IV", "V", "I", "ii", "V", "ii", "V", "vi", "ii", "V", "I6-4", "V7", "I",
        ]
        assert plan.cadences == (3, 13)
        assert [s.bass_pitch for s in plan.stations[:4]] == [48, 53, 55, 48]

    def test_short_fugue_skips_development_harmony(self) -> None:
        plan = plan_fundamental_bass(60, 12)
        assert len(plan.stations) == 11
        assert plan.cadences == (3, 10)

    def test_minor_mode_degrees(self, c_minor: Mode) -> None:
        plan = plan_fundamental_bass(60, 16, c_minor)
        vi = next(s for s in plan.stations if s.function == "vi")
        assert vi.bass_pitch == 56

    def test_figures(self) -> None:
        plan = plan_fundamental_bass(60, 16)
        dominant = plan.stations[10]
        assert [f.figure for f in dominant.figures] == ["4-3", "7-6"]
        assert dominant.figures[1].onset_offset == 0.5

    def test_bass_part(self) -> None:
        part = plan_fundamental_bass(60, 16).to_part()
        assert len(part) == 14
        assert part.total_beats() == 22.0

    def test_result_carries_plan(self, leader: list[int]) -> None:
        result = generate_fugue(ClassicFugue(subject=leader, key=62))
        assert result.bass_plan.key == 62
        assert result.bass_plan.stations[0].bass_pitch == 50


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------


class TestFugueToParts:

    def test_one_part_per_voice(self, leader: list[int], c_major: Mode) -> None:
        result = generate_fugue(ClassicFugue(subject=leader, mode=c_major))
        parts = fugue_to_parts(result)
        assert len(parts) == 3
        assert [p.leading_rests for p in parts] == [0, 4, 8]

    def test_gaps_become_rests(self, leader: list[int], c_major: Mode) -> None:
        parts = generate_fugue(ClassicFugue(subject=leader, mode=c_major)).to_parts()
        assert len(parts[0]) == 9 + 20 + 9 + 9
        assert parts[0].total_beats() == 65.0

    def test_empty_fugue(self) -> None:
        assert fugue_to_parts(generate_fugue(ClassicFugue(subject=()))) == []
