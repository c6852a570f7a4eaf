"""Pytest configuration and fixtures"""

import pytest
from hypothesis import settings, Verbosity

from posture_monitor.models.results import Baseline

# Register Hypothesis profiles
settings.register_profile("ci", max_examples=100, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=20, verbosity=Verbosity.normal)
settings.register_profile("debug", max_examples=10, verbosity=Verbosity.verbose)

# Use CI profile by default
settings.load_profile("ci")


@pytest.fixture
def baseline():
    """Default uncalibrated baseline: good 70 deg / 0.8, bad 30 deg / 0.4"""
    return Baseline.default()
