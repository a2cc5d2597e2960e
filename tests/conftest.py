"""
Pytest configuration for the master chooser tests.

Kivy reads its environment once, at first import, so the switches below must be
set before any test module imports `kivy` or `master_chooser`:
- KIVY_NO_ARGS: stop Kivy from parsing pytest's command line.
- KIVY_NO_CONSOLELOG / KIVY_NO_FILELOG: keep Kivy's logger quiet.
- KIVY_HOME: keep Kivy's config and logs out of the user's home directory.
"""

import os
import tempfile

os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_NO_CONSOLELOG", "1")
os.environ.setdefault("KIVY_NO_FILELOG", "1")
os.environ.setdefault("KIVY_HOME", tempfile.mkdtemp(prefix="kivy-home-"))

import pytest  # noqa: E402


class FakePrefs:
    """In-memory stand-in for MasterPrefs."""

    def __init__(self, stored=None, default="http://localhost:11311/"):
        self.stored = stored
        self.default = default
        self.writes = []

    def load_last_address(self):
        return self.stored if self.stored is not None else self.default

    def store_last_address(self, text):
        self.writes.append(text)
        self.stored = text


@pytest.fixture
def fake_prefs():
    return FakePrefs()


@pytest.fixture
def run_now():
    """A `schedule` that runs the UI-thread callback immediately."""
    return lambda func: func(0)
