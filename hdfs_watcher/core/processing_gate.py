import logging
from threading import Lock

from .domain_objects import GateState, utc_now


class ProcessingGate:
    """
    On/off switch deciding whether the poller may dispatch notifications.

    Closing the gate does not stop polling: directories are still listed and
    fingerprinted, pending files are just held back until the gate reopens.
    """

    def __init__(self, enabled: bool = True, reason: str = "startup"):
        self._lock = Lock()
        self._state = GateState(enabled=enabled, last_changed=utc_now(), reason=reason)
        logging.info(f"ProcessingGate initialized (enabled={enabled})")

    def enable(self, reason: str = "enabled") -> bool:
        """Open the gate. Returns True if the state changed."""
        return self._set(True, reason)

    def disable(self, reason: str = "disabled") -> bool:
        """Close the gate. Returns True if the state changed."""
        return self._set(False, reason)

    def toggle(self, reason: str = "toggled") -> bool:
        """Flip the gate and return the new enabled value."""
        with self._lock:
            new_enabled = not self._state.enabled
            self._state = GateState(enabled=new_enabled, last_changed=utc_now(), reason=reason)
        logging.info(f"Processing {'ENABLED' if new_enabled else 'DISABLED'} ({reason})")
        return new_enabled

    def is_enabled(self) -> bool:
        with self._lock:
            return self._state.enabled

    @property
    def last_changed(self):
        with self._lock:
            return self._state.last_changed

    @property
    def reason(self) -> str:
        with self._lock:
            return self._state.reason

    def state(self) -> GateState:
        with self._lock:
            return self._state

    def _set(self, enabled: bool, reason: str) -> bool:
        with self._lock:
            changed = self._state.enabled != enabled
            self._state = GateState(enabled=enabled, last_changed=utc_now(), reason=reason)
        if changed:
            logging.info(f"Processing {'ENABLED' if enabled else 'DISABLED'} ({reason})")
        else:
            logging.debug(f"Processing already {'enabled' if enabled else 'disabled'} ({reason})")
        return changed
