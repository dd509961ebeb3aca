"""Tests for result lookup and row alignment."""

from __future__ import annotations

from typing import List

from payee_matching.classification.models import (
    ClassificationResult,
    PayeeClassification,
    PayeeType,
    ProcessingTier,
    create_payee_classification,
)
from payee_matching.normalization.result_matcher import (
    ResultMatcher,
    align_results,
    find_result_by_name,
    guess_payee_column,
    validate_data_alignment,
)


def _result(name: str, row_index: int | None) -> PayeeClassification:
    return create_payee_classification(
        name,
        ClassificationResult(
            classification=PayeeType.BUSINESS,
            confidence=80.0,
            reasoning="test",
            processing_tier=ProcessingTier.RULE_BASED,
        ),
        row_index=row_index,
    )


def _results() -> List[PayeeClassification]:
    return [_result("Acme Systems", 0), _result("John Smith", 1), _result("Acme Systems Inc", 2)]


def test_exact_match_prefers_first_then_preferred_index() -> None:
    results = _results()

    assert find_result_by_name("ACME SYSTEMS LLC", results) is results[0]
    assert find_result_by_name("ACME SYSTEMS LLC", results, preferred_index=2) is results[2]
    assert find_result_by_name("ACME SYSTEMS LLC", results, preferred_index=7) is results[0]


def test_exact_match_wins_over_better_positioned_fuzzy_match() -> None:
    results = [_result("Acme System", 0), _result("Acme Systems", 1)]

    assert find_result_by_name("Acme Systems", results, preferred_index=0) is results[1]


def test_fuzzy_match_when_no_exact_match() -> None:
    results = _results()

    assert find_result_by_name("Acme System", results) is results[0]
    assert find_result_by_name("Acme System", results, preferred_index=2) is results[2]


def test_fuzzy_match_respects_threshold() -> None:
    results = [_result("Starbucks Coffee", 0)]

    assert find_result_by_name("Starbucks Cofee", results) is results[0]
    assert find_result_by_name("Starbucks Cofee", results, similarity_threshold=99.0) is None


def test_no_match_returns_none() -> None:
    assert find_result_by_name("Zebra Holdings", _results()) is None
    assert find_result_by_name("Acme", []) is None


def test_results_without_names_are_ignored() -> None:
    results = [{"payeeName": "", "rowIndex": 0}, {"rowIndex": 1}]

    assert find_result_by_name("", results) is None
    assert find_result_by_name("Acme", results) is None


def test_malformed_target_never_matches_suffix_only_names() -> None:
    results = [{"payeeName": "LLC", "rowIndex": 3}, {"payeeName": "Inc.", "rowIndex": 4}]

    assert find_result_by_name(None, results) is None
    assert find_result_by_name("  ", results) is None
    assert find_result_by_name("Corp", results, preferred_index=3) is None


def test_mapping_results_are_supported() -> None:
    results = [
        {"payeeName": "Beta LLC", "rowIndex": 4},
        {"payee_name": "Acme Inc", "row_index": 5},
    ]

    assert find_result_by_name("ACME", results) is results[1]
    assert find_result_by_name("beta", results, preferred_index=4) is results[0]


def test_matcher_instance_threshold() -> None:
    matcher = ResultMatcher(similarity_threshold=99.0)

    assert matcher.find("Acme System", _results()) is None
    assert matcher.find("Acme System", _results(), similarity_threshold=80.0) is not None


def test_guess_payee_column() -> None:
    assert guess_payee_column({"Amount": "1", "Vendor": "Acme"}) == "Vendor"
    assert guess_payee_column({"Payee Name": "Acme", "Vendor": "x"}) == "Payee Name"
    assert guess_payee_column({"Amount": "1"}) is None


def test_validate_data_alignment_reports_mismatches() -> None:
    rows = [{"Payee Name": "Acme "}, {"Payee Name": "John"}, {"Payee Name": ""}]
    results = [_result("Acme", 0), _result("Jane", 1), _result("Ghost", 2)]

    report = validate_data_alignment(rows, results)

    assert report.is_valid is False
    assert report.payee_column == "Payee Name"
    assert [(m.row_index, m.original_name, m.result_name) for m in report.mismatches] == [
        (1, "John", "Jane")
    ]


def test_validate_data_alignment_skips_without_column() -> None:
    report = validate_data_alignment([{"Amount": "1"}], [_result("Acme", 0)])

    assert report.is_valid is True
    assert report.mismatches == []


def test_align_results_uses_row_index_then_name() -> None:
    rows = [{"Vendor": "Acme"}, {"Vendor": "John Smith"}, {"Vendor": ""}]
    shuffled = [_result("John Smith", 1), _result("Acme", 0)]
    swapped = [_result("Acme", 1), _result("John Smith", 0)]

    assert align_results(rows, shuffled) == [shuffled[1], shuffled[0], None]
    assert align_results(rows, swapped) == [swapped[0], swapped[1], None]
