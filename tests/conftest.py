"""pytest configuration and fixtures for pyqt-changes tests."""

import os

import pytest

# Tests run without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication

from pyqt_changes.protocols import set_changes_config


@pytest.fixture(scope="session")
def qapp():
    """Create QApplication instance for tests."""
    app = QApplication.instance() or QApplication([])
    yield app
    # Don't quit - may cause issues with other tests


@pytest.fixture(autouse=True)
def default_changes_config():
    """Each test starts from the default configuration."""
    set_changes_config(None)
    yield
    set_changes_config(None)


class Person:
    """Plain host component used across tests."""

    def __init__(self, name="", surname=""):
        self.name = name
        self.surname = surname
        self.full_name = ""


@pytest.fixture
def person():
    return Person()


@pytest.fixture
def rerenders():
    """Re-render action recording its calls."""
    calls = []

    def rerender():
        calls.append(1)

    rerender.calls = calls
    return rerender
