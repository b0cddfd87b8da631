"""Process-wide identity and global properties.

Every read and write goes through one lock, so a ``track`` call always sees a
whole ``set_global_properties`` update or none of it, and concurrent merges
never drop each other's keys.
"""

from __future__ import annotations

import copy
import threading
from typing import Optional

from openpanel.models import Properties, merge_properties


class ProfileState:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._profile_id: Optional[str] = None
        self._global: Optional[Properties] = None

    @property
    def profile_id(self) -> Optional[str]:
        with self._lock:
            return self._profile_id

    def set_profile_id(self, profile_id: Optional[str]) -> None:
        with self._lock:
            self._profile_id = profile_id

    def global_properties(self) -> Optional[Properties]:
        """Snapshot of the global properties, or None if never set."""
        with self._lock:
            if self._global is None:
                return None
            return copy.deepcopy(self._global)

    def merge_global_properties(self, properties: Properties) -> None:
        """Merge into the existing globals; new keys win."""
        incoming = copy.deepcopy(properties)
        with self._lock:
            self._global = merge_properties(self._global, incoming)

    def merged_with(self, properties: Optional[Properties]) -> Properties:
        """Globals as defaults with ``properties`` layered on top."""
        with self._lock:
            return merge_properties(copy.deepcopy(self._global), properties)

    def reset(self) -> None:
        """Forget the current user and all global properties."""
        with self._lock:
            self._profile_id = None
            self._global = None
