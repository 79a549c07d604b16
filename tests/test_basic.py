"""Basic tests for site-safety."""

import pytest

import site_safety
from site_safety import __version__


def test_version():
    """Test that version is defined."""
    assert __version__ == "0.1.0"


@pytest.mark.parametrize("name", site_safety.__all__)
def test_public_api_is_importable(name):
    """Every name in __all__ resolves on the package."""
    assert hasattr(site_safety, name)


def test_errors_share_a_base_class():
    """Callers can catch every core failure with one except clause."""
    from site_safety.hazard_analysis import HazardAnalysisError

    for error in (
        site_safety.MediaDecodeError,
        site_safety.EmptyResponse,
        site_safety.ParseFailure,
        site_safety.SchemaMismatch,
    ):
        assert issubclass(error, HazardAnalysisError)


def test_end_to_end_with_public_api():
    """Parse and coerce a fenced reply through the top-level exports."""
    value = site_safety.parse('```json\n[{"description": "fall", "severity": 4, "likelihood": 2}]\n```')
    (hazard,) = site_safety.coerce_hazard_list(value)
    assert hazard.risk_score == 8
