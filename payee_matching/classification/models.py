"""Classification records exchanged with the external classifier."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class PayeeType(str, Enum):
    """Verdict returned for a payee."""

    BUSINESS = "Business"
    INDIVIDUAL = "Individual"


class ProcessingTier(str, Enum):
    """How a classification was produced."""

    RULE_BASED = "Rule-Based"
    NLP_BASED = "NLP-Based"
    AI_POWERED = "AI-Powered"
    EXCLUDED = "Excluded"
    FAILED = "Failed"
    DEFAULT = "Default"


class KeywordExclusionResult(BaseModel):
    """Outcome of the keyword exclusion check."""

    model_config = ConfigDict(frozen=True)

    is_excluded: bool = False
    matched_keywords: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    reasoning: str = "No keyword exclusion applied"
    original_name: str = ""


class ClassificationResult(BaseModel):
    """Verdict plus the evidence that produced it."""

    classification: PayeeType
    confidence: float = Field(ge=0.0, le=100.0)
    reasoning: str
    processing_tier: ProcessingTier
    processing_method: str | None = None
    matching_rules: List[str] = Field(default_factory=list)
    keyword_exclusion: KeywordExclusionResult | None = None
    similarity_scores: Dict[str, float] | None = None


class PayeeClassification(BaseModel):
    """Classification of a single payee row."""

    id: str
    payee_name: str
    result: ClassificationResult
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    row_index: int | None = None
    original_data: Any = None


def create_payee_classification(
    payee_name: str,
    result: ClassificationResult,
    original_data: Any = None,
    row_index: int | None = None,
) -> PayeeClassification:
    """Build a classification with a unique ``payee-<ms>-<uuid>`` id."""
    now = datetime.now(UTC)
    millis = int(now.timestamp() * 1000)
    return PayeeClassification(
        id=f"payee-{millis}-{uuid.uuid4()}",
        payee_name=payee_name,
        result=result,
        timestamp=now,
        row_index=row_index,
        original_data=original_data,
    )
