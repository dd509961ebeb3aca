"""Match classification results back to payee names and source rows."""

from __future__ import annotations

from typing import Any, List, Mapping, Sequence, Tuple, TypeVar

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from payee_matching.normalization.name_normalizer import NameNormalizer
from payee_matching.normalization.string_similarity import (
    SimilarityWeights,
    calculate_combined_similarity,
)

ResultT = TypeVar("ResultT")

PAYEE_COLUMN_HINTS = ("payee", "name", "supplier", "vendor")


def result_payee_name(result: Any) -> str | None:
    """Payee name of a result object or mapping, if it has one."""
    if isinstance(result, Mapping):
        value = result.get("payeeName", result.get("payee_name"))
    else:
        value = getattr(result, "payee_name", None)
    return value if isinstance(value, str) else None


def result_row_index(result: Any) -> int | None:
    """Row index of a result object or mapping, if it has one."""
    if isinstance(result, Mapping):
        value = result.get("rowIndex", result.get("row_index"))
    else:
        value = getattr(result, "row_index", None)
    return value if isinstance(value, int) else None


class ResultMatcher:
    """Locate the result for a payee name: exact normalized match, then fuzzy."""

    def __init__(
        self,
        similarity_threshold: float = 80.0,
        weights: SimilarityWeights | None = None,
    ) -> None:
        self.similarity_threshold = similarity_threshold
        self.weights = weights
        self._normalizer = NameNormalizer()

    def find(
        self,
        target_name: str,
        results: Sequence[ResultT],
        preferred_index: int | None = None,
        similarity_threshold: float | None = None,
    ) -> ResultT | None:
        threshold = self.similarity_threshold if similarity_threshold is None else similarity_threshold
        target = self._normalizer.normalize_text(target_name)
        if not target:
            return None

        named: List[Tuple[ResultT, str]] = []
        for result in results:
            normalized = self._normalizer.normalize_text(result_payee_name(result))
            if normalized:
                named.append((result, normalized))

        exact = [result for result, normalized in named if normalized == target]
        if exact:
            return _prefer_index(exact, preferred_index) or exact[0]

        scored = []
        for result, normalized in named:
            similarity = calculate_combined_similarity(normalized, target, self.weights).combined
            if similarity >= threshold:
                scored.append((similarity, result))
        if not scored:
            return None

        # Stable sort keeps input order among equal scores.
        scored.sort(key=lambda item: item[0], reverse=True)
        candidates = [result for _, result in scored]
        return _prefer_index(candidates, preferred_index) or candidates[0]


def _prefer_index(results: Sequence[ResultT], preferred_index: int | None) -> ResultT | None:
    if preferred_index is None:
        return None
    for result in results:
        if result_row_index(result) == preferred_index:
            return result
    return None


def find_result_by_name(
    target_name: str,
    results: Sequence[ResultT],
    preferred_index: int | None = None,
    similarity_threshold: float = 80.0,
) -> ResultT | None:
    """Find the result matching ``target_name``, or None."""
    return ResultMatcher(similarity_threshold).find(target_name, results, preferred_index)


class AlignmentMismatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    row_index: int
    original_name: str
    result_name: str


class AlignmentReport(BaseModel):
    """Positional comparison of source rows against results."""

    is_valid: bool = True
    payee_column: str | None = None
    mismatches: List[AlignmentMismatch] = Field(default_factory=list)


def guess_payee_column(row: Mapping[str, Any]) -> str | None:
    """First column whose name mentions payee, name, supplier or vendor."""
    for key in row:
        lowered = str(key).lower()
        if any(hint in lowered for hint in PAYEE_COLUMN_HINTS):
            return key
    return None


def validate_data_alignment(
    original_rows: Sequence[Mapping[str, Any]],
    results: Sequence[Any],
    payee_column: str | None = None,
) -> AlignmentReport:
    """Check that ``results[i]`` names the same payee as ``original_rows[i]``.

    Rows or results without a name are not compared. When no payee column
    can be determined the check is skipped and the report is valid.
    """
    if payee_column is None and original_rows:
        payee_column = guess_payee_column(original_rows[0])
    if payee_column is None:
        logger.warning("Could not determine payee column; skipping alignment check")
        return AlignmentReport()

    mismatches: List[AlignmentMismatch] = []
    for index, (row, result) in enumerate(zip(original_rows, results)):
        original = row.get(payee_column)
        result_name = result_payee_name(result)
        if not isinstance(original, str) or not original or not result_name:
            continue
        if original.strip() != result_name.strip():
            mismatches.append(
                AlignmentMismatch(
                    row_index=index,
                    original_name=original.strip(),
                    result_name=result_name.strip(),
                )
            )

    if mismatches:
        logger.warning("Alignment check found {} mismatched rows", len(mismatches))
    return AlignmentReport(
        is_valid=not mismatches, payee_column=payee_column, mismatches=mismatches
    )


def align_results(
    original_rows: Sequence[Mapping[str, Any]],
    results: Sequence[ResultT],
    payee_column: str | None = None,
    similarity_threshold: float = 80.0,
) -> List[ResultT | None]:
    """Return one result (or None) per source row.

    The result carrying the row's index is used when its name agrees with the
    row; otherwise the row's name is looked up with the index as preference.
    """
    if payee_column is None and original_rows:
        payee_column = guess_payee_column(original_rows[0])

    matcher = ResultMatcher(similarity_threshold)
    by_index = {}
    for result in results:
        index = result_row_index(result)
        if index is not None:
            by_index.setdefault(index, result)

    aligned: List[ResultT | None] = []
    fallbacks = 0
    for index, row in enumerate(original_rows):
        candidate = by_index.get(index)
        name = row.get(payee_column) if payee_column else None
        if not isinstance(name, str) or not name.strip():
            aligned.append(candidate)
            continue

        candidate_name = result_payee_name(candidate) if candidate is not None else None
        if candidate_name and candidate_name.strip() == name.strip():
            aligned.append(candidate)
            continue

        fallbacks += 1
        aligned.append(matcher.find(name, results, preferred_index=index))

    if fallbacks:
        logger.info("Aligned {} rows by name lookup", fallbacks)
    return aligned
