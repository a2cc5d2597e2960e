# --- Purpose -------------------------------------------------------------------
# The screen where the user types, scans or confirms the ROS master URI. Its
# layout (text field, connect / scan / cancel buttons, "advanced" checkbox and
# the new-master buttons) lives in kv_files/master_chooser_screen.kv and binds
# to the app's `MasterChooser` state object; this class only gives the
# ScreenManager a name to navigate by.

# screens/master_chooser_screen.py
# MDScreen: KivyMD's Material Design enhanced Screen, managed by a ScreenManager.
from kivymd.uix.screen import MDScreen


class MasterChooserScreen(MDScreen):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Must match `self.root.current = 'master_chooser_screen'` in app code.
        self.name = 'master_chooser_screen'
