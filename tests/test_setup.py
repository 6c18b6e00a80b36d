"""Test that the project setup is working correctly."""

import netpulse


def test_version() -> None:
    """Test that version is defined."""
    assert netpulse.__version__ == "0.1.0"


def test_import_modules() -> None:
    """Test that all submodules can be imported."""
    from netpulse import alerter, checker, config, metrics, scheduler, shutdown

    # Just verify imports work
    assert alerter is not None
    assert checker is not None
    assert config is not None
    assert metrics is not None
    assert scheduler is not None
    assert shutdown is not None
