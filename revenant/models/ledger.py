"""
The installation ledger: the in-memory form of the lock file.

Shape on disk:
  {"version": "1", "generated": "<iso>", "plugins": [InstalledRecord, ...]}

Records are keyed by name; there is at most one record per name.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from pydantic import BaseModel, Field, field_validator

from revenant.models.plugin import InstalledRecord

LOCK_FILE_VERSION = "1"


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


class Ledger(BaseModel):
    """Snapshot of what is believed to be installed."""

    version: str = LOCK_FILE_VERSION
    generated: str = Field(default_factory=utc_now)
    plugins: list[InstalledRecord] = Field(default_factory=list)

    @field_validator("plugins")
    @classmethod
    def _unique_names(cls, plugins: list[InstalledRecord]) -> list[InstalledRecord]:
        seen: set[str] = set()
        for record in plugins:
            if record.name in seen:
                raise ValueError(f"Duplicate plugin in lock file: {record.name}")
            seen.add(record.name)
        return plugins

    @classmethod
    def empty(cls, generated: Optional[str] = None) -> "Ledger":
        return cls(generated=generated or utc_now())

    def names(self) -> list[str]:
        return [record.name for record in self.plugins]

    def get(self, name: str) -> Optional[InstalledRecord]:
        for record in self.plugins:
            if record.name == name:
                return record
        return None

    def upsert(self, record: InstalledRecord) -> None:
        """Replace the record with the same name in place, or append it."""
        for i, existing in enumerate(self.plugins):
            if existing.name == record.name:
                self.plugins[i] = record
                return
        self.plugins.append(record)

    def remove(self, name: str) -> Optional[InstalledRecord]:
        """Drop a record. Returns the removed record, if there was one."""
        for i, existing in enumerate(self.plugins):
            if existing.name == name:
                return self.plugins.pop(i)
        return None

    def orphans(self, declared_names: Iterable[str]) -> list[InstalledRecord]:
        """Records for plugins no longer in the declared set."""
        declared = set(declared_names)
        return [record for record in self.plugins if record.name not in declared]

    def snapshot(self) -> "Ledger":
        """Independent deep copy, safe to mutate."""
        return self.model_copy(deep=True)

    def stamp(self, generated: Optional[str] = None) -> None:
        self.generated = generated or utc_now()
