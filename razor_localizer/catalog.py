"""In-memory resource catalog shared by the markup and code rewriters."""
import logging
from typing import Dict, Iterator, Mapping, Optional, Tuple

from razor_localizer.keys import humanize

logger = logging.getLogger(__name__)

KEY_SEPARATOR = '.'


class ResourceCatalog:
    """
    Key to display-text map with add-if-absent semantics.

    Keys compare case-insensitively and keep the casing of their first
    insertion. Once a key is present its value is never replaced.
    """

    def __init__(self, entries: Optional[Mapping[str, str]] = None):
        self._entries: Dict[str, Tuple[str, str]] = {}
        if entries:
            self.merge(entries)

    def try_add(self, key: str, value: Optional[str]) -> bool:
        """
        Add ``key`` unless it is already present or the entry is unusable.

        Args:
            key (str): The resource key, e.g. "Login.welcome".
            value (Optional[str]): The display text.

        Returns:
            bool: True if the entry was added.
        """
        if not key or key.endswith(KEY_SEPARATOR):
            return False
        if value is None or not value.strip():
            return False
        folded = key.casefold()
        if folded in self._entries:
            existing_value = self._entries[folded][1]
            if existing_value != value:
                logger.debug("Key '%s' already holds '%s'; keeping it over '%s'", key, existing_value, value)
            return False
        self._entries[folded] = (key, humanize(value))
        return True

    def merge(self, entries: Mapping[str, str]) -> int:
        """Pre-load ``entries`` through ``try_add``; returns how many were new."""
        added = 0
        for key, value in entries.items():
            if self.try_add(key, value):
                added += 1
        return added

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        entry = self._entries.get(key.casefold())
        return entry[1] if entry else default

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._entries.values())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ResourceCatalog({len(self)} entries)"
