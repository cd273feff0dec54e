"""Tests for fugato/stability.py.

Covers: bias probabilities, generated themes (tonic framing, degree
pools, small modes, reproducibility) and re-biasing an existing theme.
"""
from __future__ import annotations

import logging
import random

import pytest

from fugato.diatonic import absolute_degree
from fugato.modes import Mode
from fugato.stability import (
    STABLE_DEGREES,
    StabilityBias,
    apply_stability_bias,
    generate_stability_theme,
    stable_probability,
)


def degrees_of(theme: list[int], mode: Mode) -> list[int]:
    return [absolute_degree(n, mode) % mode.degree_count for n in theme]


# ---------------------------------------------------------------------------
# Probabilities
# ---------------------------------------------------------------------------


class TestStableProbability:

    def test_fixed_biases(self) -> None:
        assert stable_probability(StabilityBias.STABLE) == 0.8
        assert stable_probability(StabilityBias.UNSTABLE) == 0.2

    @pytest.mark.parametrize("ratio, expected", [(0, 1.0), (30, 0.7), (100, 0.0), (250, 0.0), (-10, 1.0)])
    def test_mix_ratio(self, ratio: float, expected: float) -> None:
        assert stable_probability(StabilityBias.MIX, ratio) == pytest.approx(expected)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class TestGenerateStabilityTheme:

    def test_framed_by_tonic(self, c_major: Mode) -> None:
        theme = generate_stability_theme(8, c_major, StabilityBias.STABLE, rng=random.Random(1))
        assert len(theme) == 8
        assert theme[0] == theme[-1] == 60
        assert all(c_major.contains(n) for n in theme)

    def test_degenerate_lengths(self, c_major: Mode) -> None:
        assert generate_stability_theme(0, c_major, StabilityBias.STABLE) == []
        assert generate_stability_theme(1, c_major, StabilityBias.STABLE) == [60]

    def test_all_stable_at_zero_ratio(self, c_major: Mode) -> None:
        theme = generate_stability_theme(16, c_major, StabilityBias.MIX, 0, rng=random.Random(5))
        assert set(degrees_of(theme, c_major)) <= set(STABLE_DEGREES)

    def test_all_unstable_at_full_ratio(self, c_major: Mode) -> None:
        theme = generate_stability_theme(16, c_major, StabilityBias.MIX, 100, rng=random.Random(5))
        interior = degrees_of(theme[1:-1], c_major)
        assert not set(interior) & set(STABLE_DEGREES)

    def test_pentatonic_pool(self) -> None:
        pentatonic = Mode("Major Pentatonic", (2, 2, 3, 2, 3), 0)
        theme = generate_stability_theme(12, pentatonic, StabilityBias.MIX, 100, rng=random.Random(2))
        assert set(degrees_of(theme[1:-1], pentatonic)) <= {1, 3}

    def test_octave_and_tonic(self) -> None:
        d_dorian = Mode("Dorian", (2, 1, 2, 2, 2, 1, 2), 2)
        theme = generate_stability_theme(4, d_dorian, StabilityBias.STABLE, rng=random.Random(0), octave=3)
        assert theme[0] == 50

    def test_seeded(self, c_major: Mode) -> None:
        first = generate_stability_theme(10, c_major, StabilityBias.MIX, 40, rng=random.Random(9))
        second = generate_stability_theme(10, c_major, StabilityBias.MIX, 40, rng=random.Random(9))
        assert first == second


# ---------------------------------------------------------------------------
# Re-biasing
# ---------------------------------------------------------------------------


class TestApplyStabilityBias:

    def test_keeps_ends_and_agreeing_notes(self, leader: list[int], c_major: Mode) -> None:
        result = apply_stability_bias(leader, c_major, StabilityBias.MIX, 0, rng=random.Random(3))
        assert result[0] == leader[0]
        assert result[-1] == leader[-1]
        assert result[2] == 64
        assert result[4] == 67
        assert set(degrees_of(result, c_major)) <= set(STABLE_DEGREES)

    def test_replacements_stay_in_octave(self, c_major: Mode) -> None:
        theme = [60, 74, 77, 72]
        result = apply_stability_bias(theme, c_major, StabilityBias.MIX, 0, rng=random.Random(0))
        assert all(72 <= n < 84 for n in result[1:3])

    def test_short_theme_unchanged(self, c_major: Mode) -> None:
        assert apply_stability_bias([62, 65], c_major, StabilityBias.STABLE) == [62, 65]
        assert apply_stability_bias([], c_major, StabilityBias.STABLE) == []

    def test_logs_changes(self, leader: list[int], c_major: Mode, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="fugato.stability")
        apply_stability_bias(leader, c_major, StabilityBias.MIX, 0, rng=random.Random(3))
        assert "changed 4 of 9 notes" in caplog.text
