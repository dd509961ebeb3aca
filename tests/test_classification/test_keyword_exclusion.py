"""Tests for keyword exclusion."""

from __future__ import annotations

import pytest

from payee_matching.classification.keyword_exclusion import (
    EXCLUSION_CONFIDENCE,
    KeywordExclusionFilter,
    check_keyword_exclusion,
    filter_payee_names,
    get_comprehensive_exclusion_keywords,
)
from payee_matching.utils.config import KeywordConfig


@pytest.mark.parametrize(
    ("name", "keyword"),
    [
        ("City of Springfield", "CITY OF"),
        ("Bank of America", "BANK"),
        ("Acme LLC", "LLC"),
        ("Dept. of Motor Vehicles", "DEPT OF"),
        ("Harris County Treasurers Office", "TREASURER"),
        ("Joe's Pizza", "PIZZA"),
    ],
)
def test_institutional_names_are_excluded(name: str, keyword: str) -> None:
    result = check_keyword_exclusion(name)

    assert result.is_excluded is True
    assert keyword in result.matched_keywords
    assert result.confidence == EXCLUSION_CONFIDENCE
    assert result.reasoning.startswith("Excluded by keyword match: ")
    assert result.original_name == name


@pytest.mark.parametrize("name", ["John Smith", "Robert Banks", "Maria Garcia-Lopez"])
def test_individual_names_are_not_excluded(name: str) -> None:
    result = check_keyword_exclusion(name)

    assert result.is_excluded is False
    assert result.matched_keywords == []
    assert result.confidence == 0.0


@pytest.mark.parametrize("name", [None, 12, "", "   "])
def test_invalid_names_are_never_excluded(name: object) -> None:
    result = check_keyword_exclusion(name)

    assert result.is_excluded is False
    assert result.reasoning == "No keyword exclusion applied"


def test_matched_keywords_are_sorted_and_unique() -> None:
    result = check_keyword_exclusion("Acme Bank Bank Services LLC")

    assert result.matched_keywords == ["BANK", "LLC", "SERVICES"]


def test_custom_keyword_list() -> None:
    result = check_keyword_exclusion("Smith Family Trust", ["family"])

    assert result.matched_keywords == ["FAMILY"]
    assert check_keyword_exclusion("Acme LLC", ["family"]).is_excluded is False


def test_extra_keywords_from_config() -> None:
    keyword_filter = KeywordExclusionFilter(
        KeywordConfig(extra_exclusion_keywords=["payroll", "petty cash"])
    )

    assert keyword_filter.check("Petty-Cash Fund").matched_keywords == ["PETTY CASH"]
    assert keyword_filter.check("Bank of America").is_excluded is True


def test_builtin_keywords_can_be_disabled() -> None:
    keyword_filter = KeywordExclusionFilter(
        KeywordConfig(use_builtin_keywords=False, extra_exclusion_keywords=["payroll"])
    )

    assert keyword_filter.keywords == ["PAYROLL"]
    assert keyword_filter.check("Bank of America").is_excluded is False


def test_filter_payee_names_preserves_order_and_drops_blanks() -> None:
    result = filter_payee_names(["John Smith", "", None, "Acme LLC", "Jane Doe", "City of Austin"])

    assert result.valid_names == ["John Smith", "Jane Doe"]
    assert result.excluded_names == ["Acme LLC", "City of Austin"]


def test_comprehensive_keywords_are_sorted_and_unique() -> None:
    keywords = get_comprehensive_exclusion_keywords()

    assert keywords == sorted(set(keywords))
    assert "LLC" in keywords
    assert "CITY OF" in keywords
    assert "RESTAURANT" in keywords
