"""Tests for string similarity metrics."""

from __future__ import annotations

import pytest

from payee_matching.normalization.string_similarity import (
    InvalidWeightsError,
    SimilarityWeights,
    calculate_combined_similarity,
    dice_coefficient,
    jaro_winkler_similarity,
    levenshtein_similarity,
    similarity_matrix,
    token_sort_ratio,
)


def test_levenshtein_similarity() -> None:
    assert levenshtein_similarity("kitten", "sitting") == pytest.approx(57.14, abs=0.01)
    assert levenshtein_similarity("", "") == 100.0
    assert levenshtein_similarity("abc", "") == 0.0


def test_jaro_winkler_similarity() -> None:
    assert jaro_winkler_similarity("martha", "marhta") == pytest.approx(96.11, abs=0.01)
    assert jaro_winkler_similarity("", "") == 100.0
    assert jaro_winkler_similarity("", "abc") == 0.0


def test_dice_coefficient() -> None:
    assert dice_coefficient("night", "nacht") == pytest.approx(25.0)
    assert dice_coefficient("a", "a") == 100.0
    assert dice_coefficient("a", "b") == 0.0
    assert dice_coefficient("", "abc") == 0.0


def test_token_sort_ratio_ignores_word_order() -> None:
    assert token_sort_ratio("SMITH JOHN", "JOHN SMITH") == 100.0
    assert token_sort_ratio("JOHN  SMITH", "SMITH JOHN") == 100.0
    assert token_sort_ratio("New York Pizza", "Pizza New York") == 100.0


def test_single_character_mismatch_scores_zero() -> None:
    scores = calculate_combined_similarity("A", "B")

    assert scores.model_dump() == {
        "levenshtein": 0.0,
        "jaro_winkler": 0.0,
        "dice": 0.0,
        "token_sort": 0.0,
        "combined": 0.0,
    }


@pytest.mark.parametrize(
    ("a", "b"),
    [("kitten", "sitting"), ("ACME SYSTEMS", "ACME SYSTEM"), ("JOHN SMITH", "JANE DOE")],
)
def test_metrics_are_symmetric_and_bounded(a: str, b: str) -> None:
    forward = calculate_combined_similarity(a, b)
    backward = calculate_combined_similarity(b, a)

    for metric in ("levenshtein", "jaro_winkler", "dice", "token_sort", "combined"):
        value = getattr(forward, metric)
        assert 0.0 <= value <= 100.0
        assert value == pytest.approx(getattr(backward, metric))


def test_identical_strings_score_100_everywhere() -> None:
    scores = calculate_combined_similarity("ACME", "ACME")

    assert scores.model_dump() == {
        "levenshtein": 100.0,
        "jaro_winkler": 100.0,
        "dice": 100.0,
        "token_sort": 100.0,
        "combined": 100.0,
    }


def test_one_empty_string_scores_zero() -> None:
    assert calculate_combined_similarity("", "ACME").combined == 0.0
    assert calculate_combined_similarity("", "").combined == 100.0


def test_combined_similarity_for_near_duplicates() -> None:
    scores = calculate_combined_similarity(
        "International Business Machine", "International Business Machines"
    )

    assert scores.combined > 95.0
    assert calculate_combined_similarity("ACME SYSTEMS", "ACME SYSTEM").combined == pytest.approx(
        94.89, abs=0.01
    )


def test_combined_uses_custom_weights() -> None:
    only_levenshtein = SimilarityWeights(levenshtein=1.0, jaro_winkler=0.0, dice=0.0, token_sort=0.0)

    scores = calculate_combined_similarity("kitten", "sitting", only_levenshtein)

    assert scores.combined == pytest.approx(scores.levenshtein)


def test_weights_accept_mapping() -> None:
    scores = calculate_combined_similarity(
        "kitten", "sitting", {"levenshtein": 0.5, "jaro_winkler": 0.5, "dice": 0.0, "token_sort": 0.0}
    )

    assert scores.combined == pytest.approx((scores.levenshtein + scores.jaro_winkler) / 2)


def test_invalid_weights_fail_at_call_time() -> None:
    weights = SimilarityWeights(levenshtein=0.5, jaro_winkler=0.5, dice=0.5, token_sort=0.0)

    with pytest.raises(InvalidWeightsError):
        calculate_combined_similarity("a", "b", weights)
    with pytest.raises(InvalidWeightsError):
        calculate_combined_similarity("a", "a", {"levenshtein": 2.0})


def test_mapping_weights_reject_unknown_keys() -> None:
    misspelled = {"levenshtein": 0.25, "jarowinkler": 0.9, "dice": 0.25, "token_sort": 0.15}

    with pytest.raises(InvalidWeightsError):
        calculate_combined_similarity("ACME", "ACNE", misspelled)
    with pytest.raises(ValueError):
        SimilarityWeights(levenshtein=1.0, jarowinkler=0.0)


def test_partial_mapping_weights_are_zero_filled() -> None:
    scores = calculate_combined_similarity("ACME", "ACNE", {"levenshtein": 0.5, "dice": 0.5})

    assert scores.combined == pytest.approx((scores.levenshtein + scores.dice) / 2)
    assert SimilarityWeights.from_mapping({"token_sort": 1.0}).jaro_winkler == 0.0


def test_similarity_matrix() -> None:
    matrix = similarity_matrix(["ACME SYSTEMS", "ACME SYSTEM", "JOHN SMITH"])

    assert matrix.shape == (3, 3)
    assert matrix[0, 0] == pytest.approx(100.0)
    assert matrix[0, 1] == pytest.approx(matrix[1, 0])
    assert matrix[0, 1] > 90.0
    assert matrix[0, 2] < 50.0
    assert similarity_matrix([]).shape == (0, 0)
