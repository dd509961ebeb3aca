"""Persistent duplicate-to-canonical link storage.

The deduplication engine only depends on the ``DedupeStore`` protocol: one
batch fetch and one batch upsert per run. Upserts are keyed by the duplicate
name, so the last write for a given duplicate wins.
"""

from __future__ import annotations

import csv
import json
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, List, Mapping, Protocol, Sequence

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from payee_matching.utils.config import StorageConfig


class DedupeStoreError(RuntimeError):
    """Raised when the dedupe link store cannot be read or written."""


class DedupeLink(BaseModel):
    """Edge recording that ``duplicate_normalized`` resolves to ``canonical_normalized``."""

    model_config = ConfigDict(frozen=True)

    canonical_normalized: str
    duplicate_normalized: str


class DedupeStore(Protocol):
    def fetch_dedupe_map(self, normalized_names: Sequence[str]) -> Dict[str, str]: ...

    def upsert_dedupe_links(self, links: Sequence[DedupeLink]) -> None: ...


class InMemoryDedupeStore:
    """Process-local store, mostly for tests and one-off runs."""

    def __init__(self, links: Mapping[str, str] | None = None) -> None:
        self._links: Dict[str, str] = dict(links or {})
        self.fetch_calls = 0
        self.upsert_calls = 0

    def fetch_dedupe_map(self, normalized_names: Sequence[str]) -> Dict[str, str]:
        self.fetch_calls += 1
        return {name: self._links[name] for name in set(normalized_names) if name in self._links}

    def upsert_dedupe_links(self, links: Sequence[DedupeLink]) -> None:
        self.upsert_calls += 1
        for link in links:
            self._links[link.duplicate_normalized] = link.canonical_normalized

    def all_links(self) -> List[DedupeLink]:
        return [
            DedupeLink(canonical_normalized=canonical, duplicate_normalized=duplicate)
            for duplicate, canonical in sorted(self._links.items())
        ]


class DedupeLinkRecord(BaseModel):
    """Stored link with audit metadata."""

    model_config = ConfigDict(extra="ignore")

    canonical_normalized: str
    duplicate_normalized: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_link(self) -> DedupeLink:
        return DedupeLink(
            canonical_normalized=self.canonical_normalized,
            duplicate_normalized=self.duplicate_normalized,
        )


class DedupeStoreState(BaseModel):
    """Serialized link file contents."""

    model_config = ConfigDict(extra="ignore")

    version: int = 1
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    links: Dict[str, DedupeLinkRecord] = Field(default_factory=dict)


class JsonDedupeStore:
    """Dedupe links persisted to a single JSON file."""

    def __init__(
        self,
        *,
        path: str | Path | None = None,
        config: StorageConfig | None = None,
    ) -> None:
        self.config = config or StorageConfig()
        self.path = Path(path) if path else Path(self.config.dedupe_links_path)

        self._state = DedupeStoreState()
        if self.path.exists():
            self._state = self._load_state(self.path)
            logger.info("Loaded {} dedupe links from {}", len(self._state.links), self.path)

    def fetch_dedupe_map(self, normalized_names: Sequence[str]) -> Dict[str, str]:
        """Return duplicate -> canonical for the names that have a stored link."""
        result: Dict[str, str] = {}
        for name in normalized_names:
            record = self._state.links.get(name)
            if record is not None:
                result[name] = record.canonical_normalized
        return result

    def upsert_dedupe_links(self, links: Sequence[DedupeLink]) -> None:
        """Insert or overwrite links by duplicate name and persist once.

        The in-memory state only changes once the file write has succeeded.
        """
        if not links:
            return

        now = datetime.now(UTC)
        state = self._state.model_copy(deep=True)
        for link in links:
            existing = state.links.get(link.duplicate_normalized)
            state.links[link.duplicate_normalized] = DedupeLinkRecord(
                canonical_normalized=link.canonical_normalized,
                duplicate_normalized=link.duplicate_normalized,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
        state.version += 1
        state.updated_at = now
        self._persist(state)
        self._state = state
        logger.debug("Upserted {} dedupe links into {}", len(links), self.path)

    def lookup(self, duplicate_normalized: str) -> str | None:
        record = self._state.links.get(duplicate_normalized)
        return record.canonical_normalized if record else None

    def remove(self, duplicate_normalized: str) -> bool:
        """Delete a link by duplicate name."""
        if duplicate_normalized not in self._state.links:
            return False
        state = self._state.model_copy(deep=True)
        del state.links[duplicate_normalized]
        state.version += 1
        state.updated_at = datetime.now(UTC)
        self._persist(state)
        self._state = state
        return True

    def all_links(self) -> List[DedupeLinkRecord]:
        """Return all links sorted by canonical then duplicate name."""
        return sorted(
            self._state.links.values(),
            key=lambda r: (r.canonical_normalized, r.duplicate_normalized),
        )

    @property
    def version(self) -> int:
        return self._state.version

    def export_csv(self, path: str | Path) -> Path:
        """Export links to CSV for manual review."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fieldnames = ["canonical_normalized", "duplicate_normalized", "created_at", "updated_at"]

        with target.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=fieldnames)
            writer.writeheader()
            for record in self.all_links():
                writer.writerow(
                    {
                        "canonical_normalized": record.canonical_normalized,
                        "duplicate_normalized": record.duplicate_normalized,
                        "created_at": record.created_at.isoformat(),
                        "updated_at": record.updated_at.isoformat(),
                    }
                )

        logger.info("Exported {} dedupe links to CSV at {}", len(self._state.links), target)
        return target

    def _persist(self, state: DedupeStoreState) -> None:
        payload = state.model_dump(mode="json")
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise DedupeStoreError(f"Failed to write dedupe links to {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def _load_state(self, path: Path) -> DedupeStoreState:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            return DedupeStoreState.model_validate(payload)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise DedupeStoreError(f"Failed to read dedupe links from {path}: {exc}") from exc
