"""Curation package."""

from payee_matching.curation.dedupe_adjudicator import (
    AdjudicationDecision,
    AdjudicationSummary,
    DupeCandidate,
    adjudicate_duplicates,
    find_duplicate_candidates,
)

__all__ = [
    "AdjudicationDecision",
    "AdjudicationSummary",
    "DupeCandidate",
    "adjudicate_duplicates",
    "find_duplicate_candidates",
]
