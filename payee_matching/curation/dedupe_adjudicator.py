"""Duplicate candidate discovery and adjudication.

Candidates are pairs of distinct normalized names that look alike but fell
below the automatic fuzzy-merge threshold. An external adjudicator (a human
reviewer or a language model) decides whether each pair should be merged,
linked or kept distinct; merge and link decisions become dedupe links.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, Sequence

import numpy as np
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from payee_matching.normalization.name_normalizer import NameNormalizer
from payee_matching.normalization.string_similarity import similarity_matrix
from payee_matching.storage.dedupe_store import DedupeLink, DedupeStore
from payee_matching.utils.config import MatchingConfig


class AdjudicationDecision(str, Enum):
    MERGE = "merge"
    LINK = "link"
    DISTINCT = "distinct"

    @classmethod
    def parse(cls, answer: str | None) -> AdjudicationDecision:
        """Map a free-form answer to a decision; anything unrecognised is distinct."""
        text = (answer or "").strip().lower()
        for decision in cls:
            if text == decision.value:
                return decision
        return cls.DISTINCT


class DupeCandidate(BaseModel):
    """Two input rows whose normalized names are similar but not equal."""

    model_config = ConfigDict(frozen=True)

    row_1: int
    row_2: int
    payee_name_1: str
    payee_name_2: str
    normalized_name_1: str
    normalized_name_2: str
    similarity: float


class AdjudicationSummary(BaseModel):
    """Counts and links produced by an adjudication run."""

    reviewed: int = 0
    merged: int = 0
    linked: int = 0
    distinct: int = 0
    failed: int = 0
    links: List[DedupeLink] = Field(default_factory=list)
    dry_run: bool = False


Adjudicator = Callable[[DupeCandidate], str]


def build_adjudication_prompt(candidate: DupeCandidate) -> str:
    """Prompt asking a language model for a one-word decision."""
    return (
        "Two payee names may refer to the same entity.\n\n"
        f'Payee A: "{candidate.payee_name_1}"\n'
        f'Payee B: "{candidate.payee_name_2}"\n\n'
        "Decide if they should be merged (same entity), linked (related but distinct), "
        "or treated as distinct.\n"
        "Respond with exactly one word: merge, link, or distinct."
    )


def find_duplicate_candidates(
    names: Sequence[str],
    min_similarity: float = 0.78,
) -> List[DupeCandidate]:
    """Pairs of distinct normalized names with ratio above ``min_similarity`` (0-1).

    Each normalized form is represented by its first row. Pairs are ordered by
    descending similarity, then by row.
    """
    normalizer = NameNormalizer()
    first_rows: Dict[str, int] = {}
    for index, name in enumerate(names):
        if not isinstance(name, str) or not name.strip():
            continue
        normalized = normalizer.normalize_text(name)
        if normalized:
            first_rows.setdefault(normalized, index)

    unique = list(first_rows)
    if len(unique) < 2:
        return []

    scores = similarity_matrix(unique) / 100.0
    rows, cols = np.nonzero(np.triu(scores > min_similarity, k=1))

    candidates = [
        DupeCandidate(
            row_1=first_rows[unique[i]],
            row_2=first_rows[unique[j]],
            payee_name_1=names[first_rows[unique[i]]],
            payee_name_2=names[first_rows[unique[j]]],
            normalized_name_1=unique[i],
            normalized_name_2=unique[j],
            similarity=round(float(scores[i, j]), 4),
        )
        for i, j in zip(rows.tolist(), cols.tolist())
    ]
    candidates.sort(key=lambda c: (-c.similarity, c.row_1, c.row_2))
    logger.info(
        "Found {} duplicate candidates among {} unique names", len(candidates), len(unique)
    )
    return candidates


def adjudicate_duplicates(
    candidates: Sequence[DupeCandidate],
    adjudicator: Adjudicator,
    store: DedupeStore | None = None,
    limit: int | None = None,
    *,
    dry_run: bool = False,
    config: MatchingConfig | None = None,
) -> AdjudicationSummary:
    """Ask ``adjudicator`` about each candidate and persist merge/link decisions.

    The first name of a pair is canonical. Adjudicator errors are logged and the
    pair is skipped. Links are upserted in a single call unless ``dry_run``.
    """
    if limit is None:
        limit = (config or MatchingConfig()).adjudication_limit
    batch = list(candidates[:limit])
    summary = AdjudicationSummary(dry_run=dry_run)

    for candidate in batch:
        summary.reviewed += 1
        try:
            answer = adjudicator(candidate)
        except Exception as exc:
            summary.failed += 1
            logger.error(
                "Adjudication failed for '{}' vs '{}': {}",
                candidate.normalized_name_1,
                candidate.normalized_name_2,
                exc,
            )
            continue

        decision = AdjudicationDecision.parse(answer)
        if decision == AdjudicationDecision.DISTINCT:
            summary.distinct += 1
            logger.info(
                "Marked distinct: {} vs {}", candidate.normalized_name_1, candidate.normalized_name_2
            )
            continue

        if decision == AdjudicationDecision.MERGE:
            summary.merged += 1
        else:
            summary.linked += 1
        summary.links.append(
            DedupeLink(
                canonical_normalized=candidate.normalized_name_1,
                duplicate_normalized=candidate.normalized_name_2,
            )
        )
        logger.info(
            "Recorded {} for {} and {}",
            decision.value,
            candidate.normalized_name_1,
            candidate.normalized_name_2,
        )

    if dry_run:
        logger.info("Dry-run: would record {} dedupe links", len(summary.links))
    elif store is not None and summary.links:
        store.upsert_dedupe_links(summary.links)

    return summary
