# --- High-level overview -------------------------------------------------------
# Kivy/KivyMD entry point for the ROS master chooser.
# It wires together:
#   - the chooser screen (loaded from KV)
#   - the `MasterChooser` state object the KV binds to
#   - persistence of the last used master URI
#   - QR scanning through the external scanner app (Android)
# When the user picks a master (or a new one, or cancels) the `ChooserResult`
# is handed to `result_callback` and the app stops.

# python core modules
import os
import sys

# kivy & kivymd imports
# Builder: loads .kv language UI files; returns the root widget when load_file is used.
from kivy.lang import Builder
from kivy.logger import Logger
# ObjectProperty: observable reference the KV rules use as `app.chooser`.
from kivy.properties import ObjectProperty
# dp: device-independent pixels for consistent sizing.
from kivy.metrics import dp
# resource_add_path: adds lookup directories for KV includes and other resources.
from kivy.resources import resource_add_path
from kivy.utils import platform
from kivymd.app import MDApp
from kivymd.uix.label import MDLabel

from master_chooser import __version__

# Importing the screen class registers it with Kivy's Factory for the KV file.
from master_chooser.screens.master_chooser_screen import MasterChooserScreen  # noqa: F401
from master_chooser.chooser import MasterChooser
from master_chooser.prefs import MasterPrefs, default_prefs_path
from master_chooser.qrscan import start_scan

## Global definitions
if getattr(sys, 'frozen', False):
    # Running as a PyInstaller bundle
    base_path = sys._MEIPASS
else:
    base_path = os.path.dirname(os.path.abspath(__file__))
kv_file_path = os.path.join(base_path, 'main_layout.kv')
kv_files_dir = os.path.join(base_path, 'kv_files')
# Register additional search path so KV includes like `#:include` can be found.
resource_add_path(kv_files_dir)


class MasterChooserApp(MDApp):
    title = f"ROS Master Chooser {__version__}"
    chooser = ObjectProperty(None)

    def __init__(self, result_callback=None, **kwargs):
        # result_callback(result): the calling screen's hook for the final ChooserResult.
        super().__init__(**kwargs)
        self.result_callback = result_callback
        self.chosen = None

    def build(self):
        self.theme_cls.primary_palette = "Blue"
        self.theme_cls.accent_palette = "Green"
        self.theme_cls.theme_style = "Light"
        Logger.info(f"MasterChooser: version {__version__}")
        # user_data_dir: per-app writable directory (app storage on Android).
        prefs = MasterPrefs(default_prefs_path(self.user_data_dir))
        self.chooser = MasterChooser(prefs)
        self.chooser.bind(on_toast=self.chooser_toast, on_result=self.chooser_finished)
        return Builder.load_file(kv_file_path)

    def show_toast_msg(self, message, is_error=False):
        # Shows a transient snackbar-style notice at the bottom of the screen:
        # green for progress/success, red for anything the user has to fix or retry.
        # MDSnackbar: KivyMD container for brief feedback; open() animates it in and
        # it dismisses itself after `duration` seconds.
        from kivymd.uix.snackbar import MDSnackbar
        bg_color = (0.2, 0.6, 0.2, 1) if not is_error else (0.8, 0.2, 0.2, 1)
        MDSnackbar(
            # MDLabel: themed text label placed inside the snackbar.
            MDLabel(
                text=message,
                font_style="Subtitle1"
            ),
            md_bg_color=bg_color,
            y=dp(24),
            pos_hint={"center_x": 0.5},
            duration=2  # seconds on screen
        ).open()

    def chooser_toast(self, instance, message, is_error):
        self.show_toast_msg(message, is_error=is_error)

    def chooser_finished(self, instance, result):
        Logger.info(f"MasterChooser: finished with {result}")
        self.chosen = result
        if self.result_callback:
            self.result_callback(result)
        self.stop()

    def scan_qr_code(self):
        # The scanner's text lands in the URI field; the user still has to press Connect.
        started = start_scan(
            self.chooser.scan_received,
            on_error=lambda e: self.show_toast_msg("Unsupported QR code.", is_error=True),
        )
        if not started and platform != "android":
            self.show_toast_msg("QR scanning is only available on Android", is_error=True)


def run():
    app = MasterChooserApp()
    app.run()
    return app.chosen


# Standard Python entry point: only run the app when this file is executed directly.
if __name__ == '__main__':
    run()
