"""
Division registry: the fixed catalog of driver data sources.
"""

import unicodedata
from dataclasses import dataclass
from typing import Iterable, List, Tuple


def collation_key(name: str) -> str:
    """
    Sort key that ignores case and accents, so "Éclair" sorts with "E".
    """
    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


@dataclass(frozen=True)
class SourceEntry:
    """A named division and the endpoint its driver list is fetched from."""
    name: str
    endpoint: str  # "" means no division selected

    @property
    def is_sentinel(self) -> bool:
        """True for the "no division selected" entry."""
        return self.endpoint == ""


class SourceRegistry:
    """Read-only, ordered catalog of divisions."""

    def __init__(self, entries: Iterable[SourceEntry]):
        """
        Build the registry.

        Args:
            entries: Division entries, in any order. Exactly one must be the
                sentinel (empty endpoint) and names must be unique.

        Raises:
            ValueError: If the sentinel count or name uniqueness is violated.
        """
        entries = tuple(entries)

        sentinels = [e for e in entries if e.is_sentinel]
        if len(sentinels) != 1:
            raise ValueError(
                f"Registry needs exactly one entry with an empty endpoint, got {len(sentinels)}"
            )

        names = [e.name for e in entries]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate division names: {', '.join(duplicates)}")

        self._sentinel = sentinels[0]
        self._entries: Tuple[SourceEntry, ...] = (self._sentinel,) + tuple(
            sorted(
                (e for e in entries if not e.is_sentinel),
                key=lambda e: (collation_key(e.name), e.name),
            )
        )

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "SourceRegistry":
        """Build a registry from (name, endpoint) pairs, e.g. Config.divisions."""
        return cls(SourceEntry(name=name, endpoint=endpoint) for name, endpoint in pairs)

    @property
    def sentinel(self) -> SourceEntry:
        """The "no division selected" entry."""
        return self._sentinel

    def list_sources(self) -> List[SourceEntry]:
        """Sentinel first, then divisions by case-insensitive name."""
        return list(self._entries)

    def get(self, name: str) -> SourceEntry:
        """
        Look up a division by display name.

        Raises:
            KeyError: If no division has that name.
        """
        for entry in self._entries:
            if entry.name == name:
                return entry
        raise KeyError(name)

    def __len__(self) -> int:
        return len(self._entries)
