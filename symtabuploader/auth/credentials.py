"""Keyring-backed storage for the Bugly app key."""

import logging
import os
from typing import Optional

import keyring
import keyring.errors

log = logging.getLogger(__name__)


def _keyring_service_name() -> str:
    """Separate keyring namespace when SYMTAB_UPLOADER_KEYRING_SERVICE is set (CI, tests)."""
    return os.environ.get("SYMTAB_UPLOADER_KEYRING_SERVICE", "").strip() or "SymtabUploader"


class AppKeyStore:
    """
    Stores one app key per Bugly app id in the OS keyring (Windows Credential Manager,
    macOS Keychain, Linux Secret Service), so it does not have to live in build scripts.
    """

    def get_stored(self, app_id: str) -> Optional[str]:
        """
        Return the stored app key for app_id, or None.
        On keyring read error (no backend, corrupted entry) returns None so the caller
        can report a missing key.
        """
        try:
            return keyring.get_password(_keyring_service_name(), app_id)
        except Exception as e:
            log.warning("Could not read stored app key for %s: %s", app_id, e)
            return None

    def set_stored(self, app_id: str, app_key: str) -> None:
        """Store the app key for app_id."""
        keyring.set_password(_keyring_service_name(), app_id, app_key)

    def clear_stored(self, app_id: str) -> None:
        """Remove the stored app key for app_id (no-op when absent)."""
        try:
            keyring.delete_password(_keyring_service_name(), app_id)
        except keyring.errors.PasswordDeleteError:
            pass
