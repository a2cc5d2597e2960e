# --- Purpose -------------------------------------------------------------------
# Remembers the last master address the user committed, so the chooser can
# show it the next time it opens. The address is kept as plain text; nothing
# here parses or validates it.

import os

from kivy.logger import Logger
# JsonStore: Kivy's small key/value store persisted as a JSON file.
from kivy.storage.jsonstore import JsonStore

from master_chooser.masterApi import DEFAULT_MASTER_URI

PREFS_FILENAME = "master_chooser.json"
PREFS_KEY_NAME = "master_uri"
# Suffix given to an unreadable prefs file before starting a fresh one.
CORRUPT_SUFFIX = ".corrupt"


def default_prefs_path(data_dir):
    """Location of the prefs file inside the app's `user_data_dir`."""
    return os.path.join(data_dir, PREFS_FILENAME)


class MasterPrefs:
    def __init__(self, path):
        self.path = path
        try:
            # JsonStore reads the whole file here; bad JSON raises ValueError.
            self._store = JsonStore(path)
        except ValueError as e:
            Logger.warning(f"MasterChooser: unreadable prefs file {path} ({e}), starting fresh")
            os.replace(path, path + CORRUPT_SUFFIX)
            self._store = JsonStore(path)

    def load_last_address(self, default=DEFAULT_MASTER_URI):
        if not self._store.exists(PREFS_KEY_NAME):
            return default
        entry = self._store.get(PREFS_KEY_NAME)
        value = entry.get("value") if isinstance(entry, dict) else None
        if not isinstance(value, str):
            Logger.warning(f"MasterChooser: ignoring malformed prefs entry {entry!r}")
            return default
        return value

    def store_last_address(self, text):
        # put() writes the whole file immediately
        self._store.put(PREFS_KEY_NAME, value=text)
