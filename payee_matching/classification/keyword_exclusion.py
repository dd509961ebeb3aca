"""Keyword exclusion: short-circuit names that are obviously institutional."""

from __future__ import annotations

from typing import Any, Iterable, List, Sequence

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from payee_matching.classification.keywords import (
    BUSINESS_KEYWORDS,
    GOVERNMENT_PATTERNS,
    INDUSTRY_IDENTIFIERS,
    LEGAL_SUFFIXES,
    PROFESSIONAL_TITLES,
)
from payee_matching.classification.models import KeywordExclusionResult
from payee_matching.normalization.name_normalizer import clean_text
from payee_matching.utils.config import KeywordConfig

EXCLUSION_CONFIDENCE = 95.0


class FilterResult(BaseModel):
    """Names split into those needing classification and those excluded."""

    model_config = ConfigDict(frozen=True)

    valid_names: List[str] = Field(default_factory=list)
    excluded_names: List[str] = Field(default_factory=list)


def get_comprehensive_exclusion_keywords() -> List[str]:
    """All builtin keywords merged into one sorted, duplicate-free list."""
    merged = set(LEGAL_SUFFIXES)
    merged.update(BUSINESS_KEYWORDS)
    merged.update(GOVERNMENT_PATTERNS)
    merged.update(PROFESSIONAL_TITLES)
    for identifiers in INDUSTRY_IDENTIFIERS.values():
        merged.update(identifiers)
    return sorted(merged)


class KeywordExclusionFilter:
    """Match payee names against keyword tables.

    Government patterns match as plain substrings of the cleaned name
    ("COUNTY TREASURERS" hits "TREASURER"); every other keyword must match
    whole words.
    """

    def __init__(
        self,
        config: KeywordConfig | None = None,
        keywords: Iterable[str] | None = None,
    ) -> None:
        self.config = config or KeywordConfig()

        if keywords is not None:
            word_keywords = {clean_text(k) for k in keywords}
            substring_keywords: set[str] = set()
        elif self.config.use_builtin_keywords:
            substring_keywords = set(GOVERNMENT_PATTERNS)
            word_keywords = set(get_comprehensive_exclusion_keywords()) - substring_keywords
        else:
            word_keywords = set()
            substring_keywords = set()

        word_keywords.update(clean_text(k) for k in self.config.extra_exclusion_keywords)
        word_keywords.discard("")
        self._word_keywords = sorted(word_keywords)
        self._substring_keywords = sorted(substring_keywords)

    @property
    def keywords(self) -> List[str]:
        return sorted(set(self._word_keywords) | set(self._substring_keywords))

    def check(self, name: Any) -> KeywordExclusionResult:
        """Check a single name; invalid input is never excluded."""
        if not isinstance(name, str):
            return KeywordExclusionResult()

        text = clean_text(name)
        if not text:
            return KeywordExclusionResult(original_name=name)

        padded = f" {text} "
        matched = [kw for kw in self._substring_keywords if kw in text]
        matched.extend(kw for kw in self._word_keywords if f" {kw} " in padded)
        matched = sorted(set(matched))

        if not matched:
            return KeywordExclusionResult(original_name=name)

        return KeywordExclusionResult(
            is_excluded=True,
            matched_keywords=matched,
            confidence=EXCLUSION_CONFIDENCE,
            reasoning=(
                f"Excluded by keyword match: {', '.join(matched)}. This payee contains "
                "business/institutional keywords that automatically classify it as a "
                "business entity."
            ),
            original_name=name,
        )

    def filter(self, names: Sequence[Any]) -> FilterResult:
        """Split names into valid and excluded lists, dropping blanks entirely."""
        valid: List[str] = []
        excluded: List[str] = []
        for name in names:
            if not isinstance(name, str) or not name.strip():
                continue
            if self.check(name).is_excluded:
                excluded.append(name)
            else:
                valid.append(name)

        logger.info(
            "Keyword exclusion: {} valid, {} excluded, {} skipped",
            len(valid),
            len(excluded),
            len(names) - len(valid) - len(excluded),
        )
        return FilterResult(valid_names=valid, excluded_names=excluded)


_default_filter = KeywordExclusionFilter()


def check_keyword_exclusion(
    name: Any, exclusion_keywords: Iterable[str] | None = None
) -> KeywordExclusionResult:
    """Check ``name`` against the builtin tables or a custom keyword list."""
    if exclusion_keywords is None:
        return _default_filter.check(name)
    return KeywordExclusionFilter(keywords=exclusion_keywords).check(name)


def filter_payee_names(names: Sequence[Any]) -> FilterResult:
    """Split names into ``valid_names`` and ``excluded_names`` preserving order."""
    return _default_filter.filter(names)
