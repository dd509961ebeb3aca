"""Normalization package."""

from payee_matching.normalization.deduplication import (
    DedupePersistenceError,
    DeduplicationEngine,
    DeduplicationOutcome,
    DuplicateEntry,
    DuplicateGroup,
    GroupingResult,
    ProcessQueueItem,
)
from payee_matching.normalization.name_normalizer import (
    CanonicalNameCache,
    NameNormalizer,
    NormalizedName,
    are_similar_names,
    normalize_name,
    normalize_payee_name,
)
from payee_matching.normalization.result_matcher import (
    AlignmentReport,
    ResultMatcher,
    align_results,
    find_result_by_name,
    validate_data_alignment,
)
from payee_matching.normalization.string_similarity import (
    InvalidWeightsError,
    SimilarityScoreSet,
    SimilarityWeights,
    calculate_combined_similarity,
)

__all__ = [
    "AlignmentReport",
    "CanonicalNameCache",
    "DedupePersistenceError",
    "DeduplicationEngine",
    "DeduplicationOutcome",
    "DuplicateEntry",
    "DuplicateGroup",
    "GroupingResult",
    "InvalidWeightsError",
    "NameNormalizer",
    "NormalizedName",
    "ProcessQueueItem",
    "ResultMatcher",
    "SimilarityScoreSet",
    "SimilarityWeights",
    "align_results",
    "are_similar_names",
    "calculate_combined_similarity",
    "find_result_by_name",
    "normalize_name",
    "normalize_payee_name",
    "validate_data_alignment",
]
