"""
The InventoryTracker records the network identities controlled by each custom
resource so that external consumers (e.g. a metrics exporter) know which hosts
to scrape
"""

# Standard
from typing import Dict, Iterable, List
import threading

# First Party
import alog

log = alog.use_channel("INVTR")


class InventoryTracker:
    """Thread-safe map from owner name to its recorded identities"""

    def __init__(self):
        self._state: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def controlled_values_exist(self, owner_name: str, identities: Iterable[str]) -> bool:
        """Check whether the recorded identities for an owner match exactly

        Args:
            owner_name:  str
                The name of the custom resource
            identities:  Iterable[str]
                The identities resolved by the latest verification

        Returns:
            exist:  bool
                True if the recorded set equals the given set
        """
        with self._lock:
            recorded = self._state.get(owner_name)
        return recorded is not None and set(recorded) == set(identities)

    def update_controlled_state(self, owner_name: str, identities: Iterable[str]):
        """Replace the recorded identities for an owner"""
        identities = list(identities)
        log.debug("Recording %d identities for %s", len(identities), owner_name)
        with self._lock:
            self._state[owner_name] = identities

    def remove_controlled_state(self, owner_name: str):
        """Forget everything recorded for an owner"""
        with self._lock:
            self._state.pop(owner_name, None)

    def get_controlled_state(self, owner_name: str) -> List[str]:
        with self._lock:
            return list(self._state.get(owner_name, []))
