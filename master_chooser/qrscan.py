# --- Purpose -------------------------------------------------------------------
# Hands QR scanning off to the external "Barcode Scanner" app (ZXing) on Android
# and reads the text it sends back. Decoding is entirely the scanner's job; this
# module only knows the request we send and the shape of the reply.
#
# - read_scan_result(...): pure check of a scanner reply (testable anywhere).
# - scanner_available() / start_scan(on_text): Android-only glue using pyjnius
#   and python-for-android's `android.activity` hooks.

from kivy.clock import Clock
from kivy.logger import Logger
from kivy.utils import platform

# Intent action the scanner app registers for.
BAR_CODE_SCANNER_PACKAGE_NAME = "com.google.zxing.client.android.SCAN"
# Store page opened when the scanner app is not installed.
SCANNER_MARKET_URI = "market://details?id=com.google.zxing.client.android"
SCAN_REQUEST_CODE = 0
SCAN_MODE = "QR_CODE_MODE"
ACCEPTED_FORMATS = ("TEXT_TYPE", "QR_CODE")


class ScanResultError(Exception):
    """The scanner replied with a format we do not accept."""


def read_scan_result(request_code, result_ok, scan_format, contents):
    """
    Return the scanned text, or None when the reply is not ours / was cancelled.

    Raises `ScanResultError` for an OK reply whose `SCAN_RESULT_FORMAT` is
    neither TEXT_TYPE nor QR_CODE.
    """
    if request_code != SCAN_REQUEST_CODE or not result_ok:
        return None
    if scan_format not in ACCEPTED_FORMATS:
        raise ScanResultError(f"unexpected scan format: {scan_format!r}")
    return contents


def _android_classes():
    # jnius / android only exist inside a python-for-android build.
    from jnius import autoclass
    return (
        autoclass("org.kivy.android.PythonActivity"),
        autoclass("android.content.Intent"),
        autoclass("android.net.Uri"),
        autoclass("android.content.pm.PackageManager"),
    )


def _scan_intent(Intent):
    intent = Intent(BAR_CODE_SCANNER_PACKAGE_NAME)
    intent.putExtra("SCAN_MODE", SCAN_MODE)
    return intent


def scanner_available():
    """True when an app on the device answers the scan intent."""
    if platform != "android":
        return False
    PythonActivity, Intent, _, PackageManager = _android_classes()
    package_manager = PythonActivity.mActivity.getPackageManager()
    matches = package_manager.queryIntentActivities(_scan_intent(Intent), PackageManager.MATCH_DEFAULT_ONLY)
    return matches.size() > 0


def start_scan(on_text, on_error=None):
    """
    Launch the scanner and call `on_text(text)` on the Kivy thread with the result.

    Returns False when scanning is impossible on this platform. If the scanner
    app is missing, its store page is opened instead and False is returned.
    """
    if platform != "android":
        Logger.info("MasterChooser: QR scanning is only available on Android")
        return False

    from android import activity

    PythonActivity, Intent, Uri, _ = _android_classes()
    current_activity = PythonActivity.mActivity
    if not scanner_available():
        Logger.info("MasterChooser: barcode scanner missing, opening store page")
        current_activity.startActivity(Intent(Intent.ACTION_VIEW, Uri.parse(SCANNER_MARKET_URI)))
        return False

    def on_activity_result(request_code, result_code, intent):
        if request_code != SCAN_REQUEST_CODE:
            return
        activity.unbind(on_activity_result=on_activity_result)
        result_ok = result_code == current_activity.RESULT_OK and intent is not None
        scan_format = intent.getStringExtra("SCAN_RESULT_FORMAT") if result_ok else None
        contents = intent.getStringExtra("SCAN_RESULT") if result_ok else None
        try:
            text = read_scan_result(request_code, result_ok, scan_format, contents)
        except ScanResultError as e:
            Logger.warning(f"MasterChooser: {e}")
            if on_error:
                Clock.schedule_once(lambda dt, err=e: on_error(err))
            return
        if text is not None:
            # Activity results arrive on the Android UI thread, not Kivy's.
            Clock.schedule_once(lambda dt: on_text(text))

    activity.bind(on_activity_result=on_activity_result)
    current_activity.startActivityForResult(_scan_intent(Intent), SCAN_REQUEST_CODE)
    return True
