"""Pytest configuration for phased testing.

Tests are organized by phase (f1, f2, ..., f5).
Only tests for the current phase and completed phases should run.
Future phase tests are automatically skipped.
"""

import pytest

from questionbank.config.app_config import clear_config_cache

# Current implementation phase
CURRENT_PHASE = 5


def pytest_collection_modifyitems(config, items):
    """Skip tests from phases that haven't been implemented yet."""
    for item in items:
        # Extract phase from path (tests/f2/... -> 2)
        parts = item.fspath.strpath.split("/")
        for part in parts:
            if part.startswith("f") and part[1:].isdigit():
                test_phase = int(part[1:])
                if test_phase > CURRENT_PHASE:
                    item.add_marker(
                        pytest.mark.skip(
                            reason=f"Phase F{test_phase} not yet implemented (current: F{CURRENT_PHASE})"
                        )
                    )
                break


@pytest.fixture(autouse=True)
def fresh_config(tmp_path, monkeypatch):
    """Run every test from an empty directory with default config."""
    monkeypatch.chdir(tmp_path)
    clear_config_cache()
    yield
    clear_config_cache()
