"""Pytest configuration and fixtures."""
import pytest

from fugato.modes import MAJOR_STEPS, MINOR_STEPS, Mode

LEADER = [60, 62, 64, 65, 67, 65, 64, 62, 60]


@pytest.fixture
def c_major() -> Mode:
    return Mode("Ionian (Major)", MAJOR_STEPS, 0)


@pytest.fixture
def c_minor() -> Mode:
    return Mode("Aeolian (Natural Minor)", MINOR_STEPS, 0)


@pytest.fixture
def leader() -> list[int]:
    """Stepwise C major arch used throughout the canon and fugue tests."""
    return list(LEADER)
