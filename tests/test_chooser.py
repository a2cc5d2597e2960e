"""Tests for the master chooser presentation state."""

from unittest.mock import Mock

import pytest

from master_chooser.chooser import (
    ChooserResult,
    MasterChooser,
    cancelled_result,
    existing_master_result,
    new_master_result,
)
from master_chooser.masterApi import MasterUnreachable, VerificationResult, verify_in_background

from conftest import FakePrefs


class PendingVerifications:
    """dispatch_verify stand-in that holds callbacks until the test completes them."""

    def __init__(self):
        self.calls = []

    def __call__(self, text, callback):
        self.calls.append((text, callback))

    def complete(self, result):
        _, callback = self.calls[-1]
        callback(result)


@pytest.fixture
def pending():
    return PendingVerifications()


@pytest.fixture
def chooser(fake_prefs, pending):
    return MasterChooser(fake_prefs, dispatch_verify=pending)


@pytest.fixture
def toasts(chooser):
    seen = []
    chooser.bind(on_toast=lambda instance, message, is_error: seen.append((message, is_error)))
    return seen


@pytest.fixture
def results(chooser):
    seen = []
    chooser.bind(on_result=lambda instance, result: seen.append(result))
    return seen


class TestInitialState:
    def test_shows_default_address(self, chooser):
        assert chooser.uri_text == "http://localhost:11311/"
        assert chooser.connect_enabled
        assert chooser.uri_enabled
        assert not chooser.show_advanced

    def test_shows_last_used_address(self, pending):
        chooser = MasterChooser(FakePrefs(stored="http://10.0.0.5:11311"), dispatch_verify=pending)
        assert chooser.uri_text == "http://10.0.0.5:11311"

    def test_empty_address_disables_connect(self, pending):
        chooser = MasterChooser(FakePrefs(stored=""), dispatch_verify=pending)
        assert not chooser.connect_enabled


class TestEditing:
    def test_clearing_text_disables_connect(self, chooser):
        chooser.uri_text = ""
        assert not chooser.connect_enabled

    def test_typing_enables_connect(self, chooser):
        chooser.uri_text = ""
        chooser.uri_text = "h"
        assert chooser.connect_enabled

    def test_scan_fills_field(self, chooser):
        chooser.uri_text = ""
        chooser.scan_received("http://10.0.0.9:11311")
        assert chooser.uri_text == "http://10.0.0.9:11311"
        assert chooser.connect_enabled

    def test_advanced_checkbox_toggles_new_master_buttons(self, chooser):
        chooser.set_advanced(True)
        assert chooser.show_advanced
        chooser.set_advanced(False)
        assert not chooser.show_advanced


class TestConnect:
    def test_locks_input_while_verifying(self, chooser, pending, toasts):
        chooser.connect()
        assert chooser.is_verifying
        assert not chooser.uri_enabled
        assert not chooser.connect_enabled
        assert pending.calls[0][0] == "http://localhost:11311/"
        assert toasts == [("Trying to reach master...", False)]

    def test_commits_the_address_that_was_checked(self, fake_prefs, run_now):
        """Surrounding whitespace is dropped before checking, storing and returning."""
        results = []
        probed = []
        workers = []

        def probe(uri, timeout):
            probed.append(uri)
            return uri

        def dispatch(text, callback):
            workers.append(verify_in_background(text, callback, schedule=run_now, probe=probe))

        chooser = MasterChooser(fake_prefs, dispatch_verify=dispatch)
        chooser.bind(on_result=lambda instance, result: results.append(result))
        chooser.uri_text = " http://10.0.0.5:11311\n"
        chooser.connect()
        workers[0].join(timeout=5)
        assert probed == ["http://10.0.0.5:11311"]
        assert fake_prefs.writes == ["http://10.0.0.5:11311"]
        assert results == [existing_master_result("http://10.0.0.5:11311")]
        assert chooser.uri_text == "http://10.0.0.5:11311"

    def test_refuses_second_probe_in_flight(self, chooser, pending, toasts):
        chooser.connect()
        chooser.connect()
        assert len(pending.calls) == 1
        assert toasts[-1][1] is True

    def test_valid_commits_and_finishes(self, chooser, pending, fake_prefs, toasts, results):
        chooser.uri_text = "http://10.0.0.5:11311"
        chooser.connect()
        pending.complete(VerificationResult.VALID)
        assert fake_prefs.writes == ["http://10.0.0.5:11311"]
        assert results == [existing_master_result("http://10.0.0.5:11311")]
        assert toasts[-1] == ("Connected!", False)
        assert not chooser.is_verifying

    @pytest.mark.parametrize("outcome, message", [
        (VerificationResult.INVALID_SYNTAX, "Invalid URI."),
        (VerificationResult.UNREACHABLE, "Master unreachable!"),
    ])
    def test_failure_reenables_input(self, chooser, pending, fake_prefs, toasts, results, outcome, message):
        chooser.connect()
        pending.complete(outcome)
        assert toasts[-1] == (message, True)
        assert chooser.uri_enabled
        assert chooser.connect_enabled
        assert not chooser.is_verifying
        assert fake_prefs.writes == []
        assert results == []

    def test_retry_after_failure(self, chooser, pending, results):
        chooser.connect()
        pending.complete(VerificationResult.UNREACHABLE)
        chooser.connect()
        pending.complete(VerificationResult.VALID)
        assert len(pending.calls) == 2
        assert results == [existing_master_result("http://localhost:11311/")]

    def test_with_background_verifier(self, fake_prefs, run_now):
        """Drives the real verify_in_background with an unreachable master."""
        probe = Mock(side_effect=MasterUnreachable("timed out"))
        workers = []

        def dispatch(text, callback):
            workers.append(verify_in_background(text, callback, schedule=run_now, probe=probe))

        chooser = MasterChooser(fake_prefs, dispatch_verify=dispatch)
        chooser.uri_text = "http://192.0.2.1:11311"
        chooser.connect()
        workers[0].join(timeout=5)
        assert not chooser.is_verifying
        assert chooser.uri_enabled
        assert fake_prefs.writes == []


class TestOtherExits:
    def test_new_public_master(self, chooser, results):
        chooser.new_master(private=False)
        assert results == [ChooserResult(new_master=True, private=False)]

    def test_new_private_master(self, chooser, results):
        chooser.new_master(private=True)
        assert results == [new_master_result(True)]

    def test_cancel(self, chooser, results):
        chooser.cancel()
        assert results == [cancelled_result()]
        assert results[0].master_uri is None
