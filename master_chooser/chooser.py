# --- Purpose -------------------------------------------------------------------
# Presentation state and button handlers for the master chooser screen.
#
# The KV layout binds its widgets to the Kivy properties below (field text,
# enabled flags, advanced-buttons visibility) and calls the handler methods on
# presses. Two events leave this object:
#   - on_toast(message, is_error): a short notice for the user.
#   - on_result(result): the final `ChooserResult` for the calling screen.
# Nothing here draws widgets, so it can be driven without a window.

from dataclasses import dataclass

# EventDispatcher: Kivy base class providing observable properties and events.
from kivy.event import EventDispatcher
from kivy.logger import Logger
from kivy.properties import BooleanProperty, StringProperty

from master_chooser.masterApi import VerificationResult, verify_in_background

# Notices shown for each verification outcome.
RESULT_MESSAGES = {
    VerificationResult.VALID: "Connected!",
    VerificationResult.INVALID_SYNTAX: "Invalid URI.",
    VerificationResult.UNREACHABLE: "Master unreachable!",
}


@dataclass(frozen=True)
class ChooserResult:
    """
    What the chooser hands back to the screen that opened it.

    - cancelled: the user backed out; every other field is unset.
    - new_master: the user asked for a new master instead of an existing one.
    - master_uri: the verified address (existing master only).
    - private: whether the new master should be private (new master only).
    """
    cancelled: bool = False
    new_master: bool = False
    master_uri: str | None = None
    private: bool | None = None


def existing_master_result(uri):
    return ChooserResult(new_master=False, master_uri=uri)


def new_master_result(private):
    return ChooserResult(new_master=True, private=private)


def cancelled_result():
    return ChooserResult(cancelled=True)


class MasterChooser(EventDispatcher):
    # StringProperty/BooleanProperty: observable values the KV file binds to.
    uri_text = StringProperty("")
    connect_enabled = BooleanProperty(False)
    uri_enabled = BooleanProperty(True)
    show_advanced = BooleanProperty(False)
    # Guard so only one verification runs at a time.
    is_verifying = BooleanProperty(False)

    __events__ = ("on_toast", "on_result")

    def __init__(self, prefs, dispatch_verify=verify_in_background, **kwargs):
        """
        - prefs: object with load_last_address() / store_last_address(text).
        - dispatch_verify: `dispatch_verify(text, callback)` running the check
          off the UI thread and calling back on it (see verify_in_background).
        """
        super().__init__(**kwargs)
        self.prefs = prefs
        self.dispatch_verify = dispatch_verify
        # Show the last used (or the default) address.
        self.uri_text = prefs.load_last_address()

    def on_uri_text(self, instance, value):
        # Property observer: the connect button follows the field being non-empty.
        if not self.is_verifying:
            self.connect_enabled = len(value) > 0

    def connect(self):
        if self.is_verifying:
            self.dispatch("on_toast", "Please wait, still checking the master", True)
            return
        # Prevent further edits while we verify the URI.
        self.is_verifying = True
        self.uri_enabled = False
        self.connect_enabled = False
        # The address that is checked is the one committed and shown.
        uri = self.uri_text.strip()
        self.uri_text = uri
        self.dispatch("on_toast", "Trying to reach master...", False)
        self.dispatch_verify(uri, lambda result: self.verification_done(uri, result))

    def verification_done(self, uri, result):
        self.is_verifying = False
        is_valid = result is VerificationResult.VALID
        self.dispatch("on_toast", RESULT_MESSAGES[result], not is_valid)
        if is_valid:
            self.prefs.store_last_address(uri)
            Logger.info(f"MasterChooser: using master {uri}")
            self.dispatch("on_result", existing_master_result(uri))
        else:
            self.uri_enabled = True
            self.connect_enabled = len(self.uri_text) > 0

    def scan_received(self, text):
        self.uri_text = text

    def set_advanced(self, checked):
        self.show_advanced = bool(checked)

    def new_master(self, private=False):
        self.dispatch("on_result", new_master_result(private))

    def cancel(self):
        self.dispatch("on_result", cancelled_result())

    # Default handlers; Kivy requires one per registered event.
    def on_toast(self, message, is_error):
        pass

    def on_result(self, result):
        pass
