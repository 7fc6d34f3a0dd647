import json
import logging
from collections.abc import Callable
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from activity_snapshots.storage import read_json_file
from activity_snapshots.storage import write_json_file


logger = logging.getLogger(__name__)


class NameCache:
    """Persisted id → display name map that spares repeated lookups.

    Used as read, resolve misses, write if anything was added. The
    resolver is any callable so the cache never depends on HTTP itself.
    """

    def __init__(self, path: str | Path, entries: dict[str, str] | None = None) -> None:
        self.path = Path(path)
        self.entries: dict[str, str] = dict(entries or {})
        self.changed = False

    @classmethod
    def load(cls, path: str | Path) -> "NameCache":
        """Read the cache file; a missing or unreadable file starts empty."""

        try:
            raw = read_json_file(path)
        except FileNotFoundError:
            return cls(path)
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable name cache %s", path)
            return cls(path)

        if not isinstance(raw, dict):
            logger.warning("Ignoring name cache %s: not a JSON object", path)
            return cls(path)

        entries = {str(key): value for key, value in raw.items() if isinstance(value, str)}
        return cls(path, entries)

    def get(self, key: object) -> str | None:
        return self.entries.get(str(key))

    def resolve(
        self,
        keys: Iterable[object],
        resolver: Callable[[str], str],
        max_workers: int = 8,
    ) -> dict[str, str]:
        """Resolve keys missing from the cache and return the full mapping."""

        misses = sorted({str(key) for key in keys} - self.entries.keys())
        if misses:
            logger.info("Resolving %d uncached names", len(misses))
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                resolved = list(executor.map(resolver, misses))
            self.entries.update(zip(misses, resolved))
            self.changed = True

        return self.entries

    def save_if_changed(self) -> bool:
        if not self.changed:
            return False

        write_json_file(self.path, self.entries)
        self.changed = False
        return True
