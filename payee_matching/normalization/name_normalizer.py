"""Payee name normalization and canonical-name bookkeeping."""

from __future__ import annotations

import hashlib
import re
import unicodedata
from typing import Any, Dict, List, MutableMapping, Sequence

from pydantic import BaseModel, ConfigDict, Field

from payee_matching.normalization.string_similarity import jaro_winkler_similarity

TRAILING_LEGAL_SUFFIXES: List[str] = ["CORP", "INC", "LLC", "LLP", "LP", "LTD", "PC", "PLLC"]
STANDALONE_ENTITY_WORDS: List[str] = ["COMPANY", "CORPORATION", "INCORPORATED", "LIMITED"]

# - \ ' , . / # ! $ % ^ & * ; : { } = _ ` ~ ( )
_PUNCTUATION_RE = re.compile(r"[-\\',./#!$%^&*;:{}=_`~()]")
_COMBINING_MARKS_RE = re.compile("[\\u0300-\\u036f]")
_WHITESPACE_RE = re.compile(r"\s+")


class NormalizedName(BaseModel):
    """Comparable form of a payee name plus a stable content hash."""

    model_config = ConfigDict(frozen=True)

    normalized: str
    hash: str


def content_hash(value: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded value."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class NameNormalizer:
    """Canonicalize raw payee names for exact and fuzzy comparison.

    Steps: uppercase, NFD decomposition, combining-mark removal, punctuation to
    spaces, whitespace collapse, then removal of a trailing legal suffix token
    and of standalone entity words wherever they occur.

    With ``cache=True`` results are memoized per raw string; the cache lives as
    long as the instance, so use one instance per batch.
    """

    def __init__(
        self,
        trailing_suffixes: Sequence[str] | None = None,
        entity_words: Sequence[str] | None = None,
        *,
        cache: bool = True,
    ) -> None:
        suffixes = [s.upper() for s in (trailing_suffixes or TRAILING_LEGAL_SUFFIXES)]
        words = [w.upper() for w in (entity_words or STANDALONE_ENTITY_WORDS)]

        suffix_pattern = "|".join(re.escape(s) for s in sorted(suffixes, key=len, reverse=True))
        self._suffix_re = re.compile(rf"\b({suffix_pattern})\b\.?$")
        word_pattern = "|".join(re.escape(w) for w in words)
        self._entity_words_re = re.compile(rf"\b({word_pattern})\b")
        self._use_cache = cache
        self._cache: MutableMapping[str, NormalizedName] = {}

    def normalize(self, name: Any) -> NormalizedName:
        """Normalize a single name; never raises."""
        if not isinstance(name, str) or not name:
            return EMPTY_NORMALIZED_NAME

        if self._use_cache:
            cached = self._cache.get(name)
            if cached is not None:
                return cached

        normalized = self._apply_rules(name)
        result = NormalizedName(normalized=normalized, hash=content_hash(normalized))
        if self._use_cache:
            self._cache[name] = result
        return result

    def normalize_text(self, name: Any) -> str:
        return self.normalize(name).normalized

    def normalize_batch(self, names: Sequence[Any]) -> List[NormalizedName]:
        """Normalize a batch of names."""
        return [self.normalize(name) for name in names]

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def _apply_rules(self, name: str) -> str:
        text = clean_text(name)

        # Stripping one token can expose another ("ACME INC LLC"); repeat until
        # stable so normalization stays idempotent.
        while True:
            stripped = _collapse(self._entity_words_re.sub("", self._suffix_re.sub("", text)))
            if stripped == text:
                return text
            text = stripped


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_text(name: Any) -> str:
    """Uppercase, strip diacritics and punctuation, collapse whitespace.

    This is normalization without legal-suffix removal.
    """
    if not isinstance(name, str):
        return ""
    text = unicodedata.normalize("NFD", name.upper())
    text = _COMBINING_MARKS_RE.sub("", text)
    text = _PUNCTUATION_RE.sub(" ", text)
    return _collapse(text)


EMPTY_NORMALIZED_NAME = NormalizedName(normalized="", hash=content_hash(""))
_default_normalizer = NameNormalizer(cache=False)


def normalize_name(name: Any) -> NormalizedName:
    """Normalize a name and return both the normalized text and a stable hash."""
    return _default_normalizer.normalize(name)


def normalize_payee_name(name: Any) -> str:
    """Normalize a name and return only the normalized text."""
    return _default_normalizer.normalize(name).normalized


def are_similar_names(name1: Any, name2: Any, threshold: float = 85.0) -> bool:
    """Exact match after normalization, or Jaro-Winkler similarity >= threshold."""
    normalized1 = normalize_payee_name(name1)
    normalized2 = normalize_payee_name(name2)
    if normalized1 == normalized2:
        return True
    return jaro_winkler_similarity(normalized1, normalized2) >= threshold


class CanonicalNameCache(BaseModel):
    """Per-batch map from normalized name to the first raw name that produced it.

    Owned by a deduplication run; call ``clear`` between batches so canonical
    names never leak across unrelated inputs.
    """

    entries: Dict[str, str] = Field(default_factory=dict)

    def get_canonical_name(self, name: str) -> str:
        """Return the canonical raw name for ``name``, registering it if new."""
        normalized = normalize_payee_name(name)
        existing = self.entries.get(normalized)
        if existing is not None:
            return existing
        self.entries[normalized] = name
        return name

    def clear(self) -> None:
        self.entries.clear()

    def __len__(self) -> int:
        return len(self.entries)
