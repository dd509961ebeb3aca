"""Exact and fuzzy payee deduplication.

Canonical assignment is order dependent: the first normalized form seen
becomes canonical for its group, and a later form joins the earliest
canonical it clears the similarity threshold against. Forms are compared
against canonicals only, never against every member, so grouping costs
O(n * k) for k groups and is transitive only through the canonical.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, Generic, List, Literal, Mapping, Sequence, Tuple, TypeVar

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from payee_matching.classification.models import PayeeClassification
from payee_matching.normalization.name_normalizer import CanonicalNameCache, NameNormalizer
from payee_matching.normalization.string_similarity import (
    SimilarityWeights,
    calculate_combined_similarity,
)
from payee_matching.storage.dedupe_store import DedupeLink, DedupeStore
from payee_matching.utils.config import MatchingConfig

RowT = TypeVar("RowT")


class ProcessQueueItem(BaseModel, Generic[RowT]):
    """A name that still needs external classification."""

    model_config = ConfigDict(frozen=True)

    name: str
    normalized_name: str
    original_index: int
    original_data: RowT | None = None


class DuplicateEntry(BaseModel):
    """A row that was not queued because it duplicates a canonical name."""

    model_config = ConfigDict(frozen=True)

    name: str
    normalized_name: str
    original_index: int
    canonical_normalized: str
    kind: Literal["exact", "fuzzy"]
    similarity: float
    original_data: Any = None


class DuplicateGroup(BaseModel):
    """Canonical normalized name with every raw member and row index."""

    canonical_normalized: str
    display_name: str
    members: List[str] = Field(default_factory=list)
    row_indices: List[int] = Field(default_factory=list)
    from_store: bool = False

    @property
    def size(self) -> int:
        return len(self.members)


class GroupingResult(BaseModel):
    """Groups in first-seen order plus the links discovered in this run."""

    groups: List[DuplicateGroup] = Field(default_factory=list)
    new_links: List[DedupeLink] = Field(default_factory=list)
    reused_links: int = 0

    def as_mapping(self) -> Dict[str, List[str]]:
        return {group.canonical_normalized: list(group.members) for group in self.groups}


class DeduplicationOutcome(BaseModel):
    """Result of in-memory batch deduplication."""

    process_queue: List[ProcessQueueItem[Any]] = Field(default_factory=list)
    results: List[PayeeClassification] = Field(default_factory=list)
    duplicate_cache: Dict[str, PayeeClassification] = Field(default_factory=dict)
    duplicates: List[DuplicateEntry] = Field(default_factory=list)
    dedupe_links: List[DedupeLink] = Field(default_factory=list)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)


class DedupePersistenceError(RuntimeError):
    """Store failure during ``dedupe_names``; carries the locally computed groups."""

    def __init__(
        self,
        stage: Literal["fetch", "upsert"],
        message: str,
        partial_groups: Dict[str, List[str]],
        pending_links: List[DedupeLink],
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.partial_groups = partial_groups
        self.pending_links = pending_links


class DeduplicationEngine:
    """Group duplicate payee names within a batch and across runs."""

    def __init__(
        self,
        store: DedupeStore | None = None,
        config: MatchingConfig | None = None,
        weights: SimilarityWeights | None = None,
        similarity_threshold: float | None = None,
    ) -> None:
        self.config = config or MatchingConfig()
        self.store = store
        weights = weights or SimilarityWeights.from_mapping(self.config.weights)
        self.weights = weights.ensure_valid()
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else self.config.dedupe_threshold
        )
        self.canonical_names = CanonicalNameCache()
        self._normalizer = NameNormalizer()

    def reset(self) -> None:
        """Drop per-batch caches."""
        self.canonical_names.clear()
        self._normalizer.clear_cache()

    # Persistent variant
    def dedupe_names(
        self, names: Sequence[str], use_fuzzy: bool | None = None
    ) -> Dict[str, List[str]]:
        """Map each canonical normalized name to its raw member names."""
        return self.group_names(names, use_fuzzy=use_fuzzy).as_mapping()

    def group_names(
        self, names: Sequence[str], use_fuzzy: bool | None = None
    ) -> GroupingResult:
        """Group ``names`` using stored links first, then local matching.

        Raises:
            DedupePersistenceError: If the store fails. The error carries the
                local grouping and the links that were not persisted.
        """
        self.reset()
        normalized = [self._normalizer.normalize_text(name) for name in names]
        for name in names:
            if isinstance(name, str):
                self.canonical_names.get_canonical_name(name)

        existing: Dict[str, str] = {}
        if self.store is not None:
            try:
                existing = self.store.fetch_dedupe_map(list(dict.fromkeys(normalized)))
            except Exception as exc:
                local = self._group_locally(names, normalized, range(len(names)), use_fuzzy)
                logger.error(
                    "Dedupe link fetch failed; {} names grouped locally into {} groups: {}",
                    len(names),
                    len(local.groups),
                    exc,
                )
                raise DedupePersistenceError(
                    "fetch",
                    f"Failed to fetch dedupe links: {exc}",
                    partial_groups=local.as_mapping(),
                    pending_links=list(local.new_links),
                ) from exc

        groups: "OrderedDict[str, DuplicateGroup]" = OrderedDict()
        remaining: List[int] = []
        for index, norm in enumerate(normalized):
            canonical = existing.get(norm)
            if canonical is None:
                remaining.append(index)
                continue
            group = groups.get(canonical)
            if group is None:
                group = DuplicateGroup(
                    canonical_normalized=canonical,
                    display_name=self.canonical_names.entries.get(canonical, canonical),
                    from_store=True,
                )
                groups[canonical] = group
            group.members.append(names[index])
            group.row_indices.append(index)

        local = self._group_locally(names, normalized, remaining, use_fuzzy)
        for local_group in local.groups:
            group = groups.get(local_group.canonical_normalized)
            if group is None:
                groups[local_group.canonical_normalized] = local_group
            else:
                group.members.extend(local_group.members)
                group.row_indices.extend(local_group.row_indices)

        result = GroupingResult(
            groups=list(groups.values()),
            new_links=local.new_links,
            reused_links=len({norm for norm in normalized if norm in existing}),
        )

        if self.store is not None and result.new_links:
            try:
                self.store.upsert_dedupe_links(result.new_links)
            except Exception as exc:
                logger.error(
                    "Failed to persist {} dedupe links: {}", len(result.new_links), exc
                )
                raise DedupePersistenceError(
                    "upsert",
                    f"Failed to persist dedupe links: {exc}",
                    partial_groups=result.as_mapping(),
                    pending_links=list(result.new_links),
                ) from exc

        logger.info(
            "Deduplicated {} names into {} groups ({} stored links reused, {} new links)",
            len(names),
            len(result.groups),
            result.reused_links,
            len(result.new_links),
        )
        return result

    def _group_locally(
        self,
        names: Sequence[str],
        normalized: Sequence[str],
        indices: Sequence[int],
        use_fuzzy: bool | None = None,
    ) -> GroupingResult:
        if use_fuzzy is None:
            use_fuzzy = self.config.use_fuzzy_matching

        # First pass: exact matches on the normalized form, in input order.
        exact: "OrderedDict[str, List[int]]" = OrderedDict()
        for index in indices:
            exact.setdefault(normalized[index], []).append(index)

        # Second pass: each unique form joins the earliest canonical it matches.
        groups: "OrderedDict[str, DuplicateGroup]" = OrderedDict()
        links: "OrderedDict[str, DedupeLink]" = OrderedDict()
        for norm, members in exact.items():
            canonical, similarity = None, 0.0
            if use_fuzzy:
                canonical, similarity = self._match_canonical(
                    norm, list(groups.keys()), self.similarity_threshold
                )
            if canonical is None:
                canonical = norm
                groups[canonical] = DuplicateGroup(
                    canonical_normalized=canonical,
                    display_name=self.canonical_names.entries.get(canonical, names[members[0]]),
                )
            else:
                logger.debug(
                    "Fuzzy duplicate: '{}' joins '{}' ({:.1f}%)", norm, canonical, similarity
                )
                links[norm] = DedupeLink(canonical_normalized=canonical, duplicate_normalized=norm)

            group = groups[canonical]
            group.members.extend(names[i] for i in members)
            group.row_indices.extend(members)

        return GroupingResult(groups=list(groups.values()), new_links=list(links.values()))

    def _match_canonical(
        self, normalized: str, canonicals: Sequence[str], threshold: float
    ) -> Tuple[str | None, float]:
        """Earliest canonical whose combined similarity clears ``threshold``."""
        for canonical in canonicals:
            similarity = calculate_combined_similarity(normalized, canonical, self.weights).combined
            if similarity >= threshold:
                return canonical, similarity
        return None, 0.0

    # In-memory batch variant
    def process_payee_deduplication(
        self,
        names: Sequence[str],
        original_rows: Sequence[Any] | None = None,
        use_fuzzy: bool | None = None,
        similarity_threshold: float | None = None,
        cached_results: Mapping[str, PayeeClassification] | None = None,
    ) -> DeduplicationOutcome:
        """Split a batch into a process queue and duplicates of queued names.

        ``cached_results`` maps normalized names to classifications already known
        (for example from an earlier batch); rows matching them are resolved
        immediately instead of being queued.
        """
        self.reset()
        use_fuzzy = self.config.use_fuzzy_matching if use_fuzzy is None else use_fuzzy
        threshold = self.similarity_threshold if similarity_threshold is None else similarity_threshold

        outcome = DeduplicationOutcome(duplicate_cache=dict(cached_results or {}))
        # Canonicals in the order they became known: cached first, then queued.
        canonicals: "OrderedDict[str, None]" = OrderedDict(
            (key, None) for key in outcome.duplicate_cache
        )
        links: "OrderedDict[str, DedupeLink]" = OrderedDict()

        for index, raw in enumerate(names):
            if not isinstance(raw, str):
                continue
            name = raw.strip()
            if not name:
                continue

            normalized = self._normalizer.normalize_text(name)
            row = _row_at(original_rows, index)

            if normalized in canonicals:
                entry = DuplicateEntry(
                    name=name,
                    normalized_name=normalized,
                    original_index=index,
                    canonical_normalized=normalized,
                    kind="exact",
                    similarity=100.0,
                    original_data=row,
                )
                self._add_duplicate(outcome, entry)
                continue

            if use_fuzzy:
                canonical, similarity = self._match_canonical(
                    normalized, list(canonicals), threshold
                )
                if canonical is not None:
                    logger.debug(
                        "Fuzzy duplicate found: '{}' matches '{}' ({:.1f}%)",
                        name,
                        canonical,
                        similarity,
                    )
                    entry = DuplicateEntry(
                        name=name,
                        normalized_name=normalized,
                        original_index=index,
                        canonical_normalized=canonical,
                        kind="fuzzy",
                        similarity=similarity,
                        original_data=row,
                    )
                    self._add_duplicate(outcome, entry)
                    links.setdefault(
                        normalized,
                        DedupeLink(canonical_normalized=canonical, duplicate_normalized=normalized),
                    )
                    continue

            outcome.process_queue.append(
                ProcessQueueItem(
                    name=name,
                    normalized_name=normalized,
                    original_index=index,
                    original_data=row,
                )
            )
            canonicals[normalized] = None

        outcome.dedupe_links = list(links.values())
        logger.info(
            "After deduplication: {} unique names to process ({} duplicates found)",
            len(outcome.process_queue),
            outcome.duplicate_count,
        )
        return outcome

    def record_classification(
        self,
        outcome: DeduplicationOutcome,
        normalized_name: str,
        classification: PayeeClassification,
    ) -> None:
        """Cache a classification for a canonical name. First write wins."""
        outcome.duplicate_cache.setdefault(normalized_name, classification)

    def expand_duplicates(
        self,
        outcome: DeduplicationOutcome,
        classified: Sequence[PayeeClassification],
    ) -> List[PayeeClassification]:
        """Fan classifications of queued names out to their duplicates.

        Returns the classified rows plus one copy per duplicate row, sorted by
        row index.
        """
        by_index = {item.original_index: item for item in outcome.process_queue}
        for classification in classified:
            item = by_index.get(classification.row_index)
            if item is not None:
                key = item.normalized_name
            else:
                key = self._normalizer.normalize_text(classification.payee_name)
            self.record_classification(outcome, key, classification)

        resolved = {result.row_index for result in outcome.results}
        for entry in outcome.duplicates:
            if entry.original_index in resolved:
                continue
            cached = outcome.duplicate_cache.get(entry.canonical_normalized)
            if cached is None:
                logger.warning(
                    "No classification for canonical '{}' (row {})",
                    entry.canonical_normalized,
                    entry.original_index,
                )
                continue
            outcome.results.append(_copy_for_duplicate(cached, entry))

        combined = list(classified) + list(outcome.results)
        return sorted(
            combined,
            key=lambda r: r.row_index if r.row_index is not None else len(combined),
        )

    def persist_links(self, links: Sequence[DedupeLink]) -> None:
        """Upsert links discovered by ``process_payee_deduplication``."""
        if self.store is None or not links:
            return
        self.store.upsert_dedupe_links(list(links))

    def _add_duplicate(self, outcome: DeduplicationOutcome, entry: DuplicateEntry) -> None:
        outcome.duplicates.append(entry)
        cached = outcome.duplicate_cache.get(entry.canonical_normalized)
        if cached is not None:
            outcome.results.append(_copy_for_duplicate(cached, entry))


def _row_at(rows: Sequence[Any] | None, index: int) -> Any:
    if rows is None or index >= len(rows):
        return None
    return rows[index]


def _copy_for_duplicate(
    cached: PayeeClassification, entry: DuplicateEntry
) -> PayeeClassification:
    suffix = "dup" if entry.kind == "exact" else "fuzzy"
    update: Dict[str, Any] = {
        "id": f"{cached.id}-{suffix}-{entry.original_index}",
        "payee_name": entry.name,
        "row_index": entry.original_index,
        "original_data": entry.original_data,
    }
    if entry.kind == "fuzzy":
        update["result"] = cached.result.model_copy(
            update={
                "reasoning": (
                    f"{cached.result.reasoning} "
                    f"(Fuzzy match with {entry.similarity:.1f}% similarity)"
                )
            }
        )
    return cached.model_copy(update=update)


def process_payee_deduplication(
    names: Sequence[str],
    original_rows: Sequence[Any] | None = None,
    use_fuzzy: bool = True,
    similarity_threshold: float = 90.0,
) -> DeduplicationOutcome:
    """Run in-memory deduplication with a throwaway engine."""
    engine = DeduplicationEngine(similarity_threshold=similarity_threshold)
    return engine.process_payee_deduplication(
        names, original_rows=original_rows, use_fuzzy=use_fuzzy
    )


def deduplicate_names(
    names: Sequence[str],
    store: DedupeStore | None = None,
    similarity_threshold: float = 90.0,
) -> Dict[str, List[str]]:
    """Run persistent deduplication with a throwaway engine."""
    engine = DeduplicationEngine(store=store, similarity_threshold=similarity_threshold)
    return engine.dedupe_names(names)
