"""Tests for classification records and keyword tables."""

from __future__ import annotations

import re

import pytest
from pydantic import ValidationError

from payee_matching.classification import keywords
from payee_matching.classification.models import (
    ClassificationResult,
    PayeeType,
    ProcessingTier,
    create_payee_classification,
)


@pytest.mark.parametrize(
    "table",
    [
        keywords.LEGAL_SUFFIXES,
        keywords.BUSINESS_KEYWORDS,
        keywords.GOVERNMENT_PATTERNS,
        keywords.PROFESSIONAL_TITLES,
        *keywords.INDUSTRY_IDENTIFIERS.values(),
    ],
)
def test_keyword_tables_are_sorted_uppercase_and_unique(table: list) -> None:
    assert table == sorted(set(table))
    assert all(keyword == keyword.upper().strip() for keyword in table)


def test_create_payee_classification_builds_unique_ids() -> None:
    result = ClassificationResult(
        classification=PayeeType.INDIVIDUAL,
        confidence=72.5,
        reasoning="Looks like a personal name",
        processing_tier=ProcessingTier.NLP_BASED,
    )

    first = create_payee_classification("John Smith", result, original_data={"id": 1}, row_index=3)
    second = create_payee_classification("John Smith", result)

    assert re.fullmatch(r"payee-\d+-[0-9a-f-]{36}", first.id)
    assert first.id != second.id
    assert first.row_index == 3
    assert first.original_data == {"id": 1}
    assert second.row_index is None


def test_confidence_must_be_a_percentage() -> None:
    with pytest.raises(ValidationError):
        ClassificationResult(
            classification=PayeeType.BUSINESS,
            confidence=101.0,
            reasoning="too sure",
            processing_tier=ProcessingTier.AI_POWERED,
        )


def test_enum_values_match_wire_format() -> None:
    assert PayeeType.BUSINESS.value == "Business"
    assert ProcessingTier.RULE_BASED.value == "Rule-Based"
    assert ProcessingTier.AI_POWERED.value == "AI-Powered"
