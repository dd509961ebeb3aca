"""String similarity metrics and their weighted combination.

All metrics return percentages in [0, 100] and are symmetric. Edge cases are
fixed: two empty strings score 100, a single empty string scores 0, identical
strings score 100 on every metric.
"""

from __future__ import annotations

import math
from typing import Callable, List, Mapping, Sequence, Set

import numpy as np
from pydantic import BaseModel, ConfigDict
from rapidfuzz import fuzz, process
from rapidfuzz.distance import JaroWinkler, Levenshtein


class InvalidWeightsError(ValueError):
    """Raised when similarity weights do not sum to 1.0."""


class SimilarityWeights(BaseModel):
    """Weights applied to each metric when computing the combined score.

    The sum is checked when the weights are used, not when they are built, so a
    bad set fails at the call that relies on it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    levenshtein: float = 0.25
    jaro_winkler: float = 0.35
    dice: float = 0.25
    token_sort: float = 0.15

    @property
    def total(self) -> float:
        return self.levenshtein + self.jaro_winkler + self.dice + self.token_sort

    def ensure_valid(self) -> SimilarityWeights:
        """Return self, or raise InvalidWeightsError if the weights do not sum to 1.0."""
        if not math.isclose(self.total, 1.0, abs_tol=1e-6):
            raise InvalidWeightsError(f"Similarity weights must sum to 1.0, got {self.total:.4f}")
        return self

    @classmethod
    def from_mapping(cls, weights: Mapping[str, float]) -> SimilarityWeights:
        """Build weights from a partial mapping; metrics left out weigh zero."""
        unknown = set(weights) - set(cls.model_fields)
        if unknown:
            raise InvalidWeightsError(f"Unknown similarity weights: {sorted(unknown)}")
        return cls(**{**{name: 0.0 for name in cls.model_fields}, **weights})


DEFAULT_SIMILARITY_WEIGHTS = SimilarityWeights()


class SimilarityScoreSet(BaseModel):
    """Individual metric scores plus the weighted combination."""

    model_config = ConfigDict(frozen=True)

    levenshtein: float
    jaro_winkler: float
    dice: float
    token_sort: float
    combined: float


def levenshtein_similarity(a: str, b: str) -> float:
    """100 * (1 - edit_distance / longest_length)."""
    if not a and not b:
        return 100.0
    if not a or not b:
        return 0.0
    distance = Levenshtein.distance(a, b)
    return 100.0 * (1.0 - distance / max(len(a), len(b)))


def jaro_winkler_similarity(a: str, b: str) -> float:
    """Jaro similarity with a Winkler prefix boost (prefix <= 4, factor 0.1)."""
    if not a and not b:
        return 100.0
    if not a or not b:
        return 0.0
    return 100.0 * JaroWinkler.similarity(a, b, prefix_weight=0.1)


def _bigrams(value: str) -> Set[str]:
    return {value[i : i + 2] for i in range(len(value) - 1)}


def dice_coefficient(a: str, b: str) -> float:
    """Sorensen-Dice coefficient over character bigram sets."""
    if a == b:
        return 100.0
    if not a or not b:
        return 0.0

    left = _bigrams(a)
    right = _bigrams(b)
    if not left or not right:
        return 0.0

    overlap = len(left & right)
    return 100.0 * 2 * overlap / (len(left) + len(right))


def _sort_tokens(value: str) -> str:
    return " ".join(sorted(value.split()))


def token_sort_ratio(a: str, b: str) -> float:
    """Levenshtein similarity after sorting whitespace-separated tokens."""
    return levenshtein_similarity(_sort_tokens(a), _sort_tokens(b))


def calculate_combined_similarity(
    a: str, b: str, weights: SimilarityWeights | Mapping[str, float] | None = None
) -> SimilarityScoreSet:
    """Score a pair on all four metrics and combine them with ``weights``.

    Raises:
        InvalidWeightsError: If the supplied weights do not sum to 1.0.
    """
    weights = _validate_weights(weights)

    if a == b:
        return SimilarityScoreSet(
            levenshtein=100.0, jaro_winkler=100.0, dice=100.0, token_sort=100.0, combined=100.0
        )
    if not a or not b:
        return SimilarityScoreSet(
            levenshtein=0.0, jaro_winkler=0.0, dice=0.0, token_sort=0.0, combined=0.0
        )

    levenshtein = levenshtein_similarity(a, b)
    jaro_winkler = jaro_winkler_similarity(a, b)
    dice = dice_coefficient(a, b)
    token_sort = token_sort_ratio(a, b)
    combined = (
        levenshtein * weights.levenshtein
        + jaro_winkler * weights.jaro_winkler
        + dice * weights.dice
        + token_sort * weights.token_sort
    )

    return SimilarityScoreSet(
        levenshtein=levenshtein,
        jaro_winkler=jaro_winkler,
        dice=dice,
        token_sort=token_sort,
        combined=combined,
    )


def _validate_weights(
    weights: SimilarityWeights | Mapping[str, float] | None,
) -> SimilarityWeights:
    if weights is None:
        return DEFAULT_SIMILARITY_WEIGHTS
    if not isinstance(weights, SimilarityWeights):
        weights = SimilarityWeights.from_mapping(weights)
    return weights.ensure_valid()


def similarity_matrix(
    names: Sequence[str],
    scorer: Callable[..., float] = fuzz.ratio,
) -> np.ndarray:
    """Score every name against every other name (0-100) with RapidFuzz."""
    if not names:
        return np.zeros((0, 0), dtype=np.float32)
    values: List[str] = list(names)
    matrix = np.asarray(
        process.cdist(values, values, scorer=scorer, processor=None), dtype=np.float32
    )
    np.fill_diagonal(matrix, 100.0)
    return matrix
