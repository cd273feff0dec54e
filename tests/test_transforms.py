"""Tests for fugato/transforms.py.

Covers: every transformation variant, scopes, pipelines and the
round-trip properties of retrograde and inversion.
"""
from __future__ import annotations

import random

import pytest

from fugato.modes import MINOR_STEPS, Mode
from fugato.parts import VoiceRole
from fugato.transforms import (
    Augmentation,
    ChromaticPassing,
    Diminution,
    Elision,
    Fragmentation,
    Inversion,
    Material,
    ModeShift,
    OrnamentStyle,
    Ornamentation,
    Retrograde,
    Sequencing,
    TransformScope,
    Transposition,
    Truncation,
    apply_pipeline,
    apply_transformation,
)


@pytest.fixture
def material(leader: list[int]) -> Material:
    return Material.of(leader, [1.0, 0.5, 0.5, 1.0, 2.0, 0.5, 0.5, 1.0, 2.0])


class TestMaterial:

    def test_default_durations(self) -> None:
        assert Material.of([60, 62]).durations == (1.0, 1.0)

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError):
            Material((60, 62), (1.0,))


class TestRoundTrips:

    def test_retrograde_twice(self, material: Material) -> None:
        once = apply_transformation(material, Retrograde())
        assert once.notes == material.notes[::-1]
        assert apply_transformation(once, Retrograde()) == material

    def test_inversion_twice(self, material: Material) -> None:
        inversion = Inversion(axis=62)
        assert apply_transformation(apply_transformation(material, inversion), inversion) == material

    def test_inversion_defaults_to_first_note(self) -> None:
        result = apply_transformation(Material.of([60, 64, 67]), Inversion())
        assert result.notes == (60, 56, 53)


class TestDurations:

    def test_augmentation(self, material: Material) -> None:
        result = apply_transformation(material, Augmentation())
        assert result.durations == tuple(d * 2 for d in material.durations)
        assert result.notes == material.notes

    def test_diminution_has_a_floor(self) -> None:
        result = apply_transformation(Material.of([60, 62], [1.0, 0.25]), Diminution(factor=2))
        assert result.durations == (0.5, 0.25)


class TestLengthChanges:

    def test_truncation_default(self, material: Material) -> None:
        assert len(apply_transformation(material, Truncation())) == 6

    def test_truncation_explicit(self, material: Material) -> None:
        assert apply_transformation(material, Truncation(length=2)).notes == (60, 62)

    def test_elision_keeps_head_and_tail(self, material: Material) -> None:
        result = apply_transformation(material, Elision())
        assert result.notes == (60, 62, 64, 64, 62, 60)

    def test_elision_short_material_unchanged(self) -> None:
        short = Material.of([60, 62, 64])
        assert apply_transformation(short, Elision(keep=0.5)) == short

    def test_fragmentation(self, material: Material) -> None:
        assert apply_transformation(material, Fragmentation()).notes == (60, 62, 64)
        assert apply_transformation(material, Fragmentation(size=2, start=3)).notes == (65, 67)

    def test_fragment_start_clamped(self, material: Material) -> None:
        result = apply_transformation(material, Fragmentation(size=4, start=20))
        assert result.notes == material.notes[-4:]

    def test_sequencing(self) -> None:
        result = apply_transformation(Material.of([60, 62]), Sequencing(steps=(0, 2, 4)))
        assert result.notes == (60, 62, 62, 64, 64, 66)


class TestPitchChanges:

    def test_transposition(self, material: Material) -> None:
        result = apply_transformation(material, Transposition(semitones=-12))
        assert result.notes == tuple(n - 12 for n in material.notes)

    def test_mode_shift_to_minor(self, c_major: Mode) -> None:
        minor = Mode("Aeolian", MINOR_STEPS, 0)
        result = apply_transformation(Material.of([60, 64, 69, 71]), ModeShift(target=minor), mode=c_major)
        assert result.notes == (60, 63, 68, 70)

    def test_mode_shift_moves_tonic(self, c_major: Mode) -> None:
        d_major = c_major.transposed(2)
        result = apply_transformation(Material.of([60, 67]), ModeShift(target=d_major), mode=c_major)
        assert result.notes == (62, 69)

    def test_mode_shift_without_source_mode(self, c_major: Mode) -> None:
        original = Material.of([60, 64])
        assert apply_transformation(original, ModeShift(target=c_major)) == original

    def test_chromatic_passing(self) -> None:
        result = apply_transformation(Material.of([60, 64, 65]), ChromaticPassing())
        assert result.notes == (60, 63, 64, 65)
        assert result.durations == pytest.approx((0.6, 0.4, 1.0, 1.0))

    def test_chromatic_passing_descending(self) -> None:
        assert apply_transformation(Material.of([67, 60]), ChromaticPassing()).notes == (67, 61, 60)


class TestOrnamentation:

    def test_neighbor_preserves_total_length(self, material: Material, c_major: Mode) -> None:
        result = apply_transformation(material, Ornamentation(), mode=c_major)
        assert len(result) == 3 * len(material)
        assert result.total_beats() == pytest.approx(material.total_beats())
        assert result.notes[:3] == (60, 62, 60)

    def test_trill_uses_scale_neighbour(self, c_major: Mode) -> None:
        result = apply_transformation(Material.of([64]), Ornamentation(style=OrnamentStyle.TRILL), mode=c_major)
        assert result.notes == (64, 65, 64, 65)

    def test_zero_density_changes_nothing(self, material: Material) -> None:
        result = apply_transformation(material, Ornamentation(density=0.0), rng=random.Random(1))
        assert result == material

    def test_random_style_reproducible(self, material: Material) -> None:
        transform = Ornamentation(style=None, density=0.5)
        first = apply_transformation(material, transform, rng=random.Random(11))
        second = apply_transformation(material, transform, rng=random.Random(11))
        assert first == second


class TestPipeline:

    def test_scope_filters_by_role(self) -> None:
        retrograde = Retrograde(scope=TransformScope.ANSWER)
        assert retrograde.applies_to(VoiceRole.ANSWER)
        assert not retrograde.applies_to(VoiceRole.SUBJECT)
        assert Retrograde().applies_to(VoiceRole.FREE)

    def test_pipeline_order(self) -> None:
        transforms = [Transposition(semitones=2), Truncation(length=1), Augmentation(factor=3)]
        result = apply_pipeline(Material.of([60, 62]), VoiceRole.SUBJECT, transforms)
        assert result == Material((62,), (3.0,))

    def test_pipeline_skips_out_of_scope(self) -> None:
        transforms = [Transposition(semitones=2, scope="subject"), Transposition(semitones=12, scope="answer")]
        result = apply_pipeline(Material.of([60]), VoiceRole.ANSWER, transforms)
        assert result.notes == (72,)

    def test_empty_material_unchanged(self) -> None:
        assert apply_pipeline(Material(), VoiceRole.SUBJECT, [Sequencing(), Augmentation()]) == Material()
