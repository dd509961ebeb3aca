"""Classification records and keyword exclusion."""

from payee_matching.classification.keyword_exclusion import (
    FilterResult,
    KeywordExclusionFilter,
    check_keyword_exclusion,
    filter_payee_names,
)
from payee_matching.classification.models import (
    ClassificationResult,
    KeywordExclusionResult,
    PayeeClassification,
    PayeeType,
    ProcessingTier,
)

__all__ = [
    "ClassificationResult",
    "FilterResult",
    "KeywordExclusionFilter",
    "KeywordExclusionResult",
    "PayeeClassification",
    "PayeeType",
    "ProcessingTier",
    "check_keyword_exclusion",
    "filter_payee_names",
]
