"""Tests for configuration loading and override behavior."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from payee_matching.utils.config import (
    Config,
    MatchingConfig,
    get_config,
    load_config,
    reset_config,
)


@pytest.fixture(autouse=True)
def _reset_global_config() -> None:
    """Ensure config singleton doesn't leak between tests."""
    reset_config()
    yield
    reset_config()


def _write_yaml(path: Path, data: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")


def _base_config(tmp_path: Path) -> dict:
    return {
        "data_path": str(tmp_path / "data"),
        "storage": {"dedupe_links_path": str(tmp_path / "data" / "dedupe" / "links.json")},
    }


def test_yaml_loads_values(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.yaml"
    data = _base_config(tmp_path)
    data["matching"] = {"dedupe_threshold": 93, "use_fuzzy_matching": False}
    data["keywords"] = {"extra_exclusion_keywords": ["payroll"]}
    _write_yaml(cfg_path, data)

    cfg = load_config(cfg_path)

    assert cfg.matching.dedupe_threshold == 93
    assert cfg.matching.use_fuzzy_matching is False
    assert cfg.matching.result_match_threshold == 80
    assert cfg.keywords.extra_exclusion_keywords == ["payroll"]
    assert get_config() is cfg
    assert (tmp_path / "data" / "dedupe").is_dir()


def test_env_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg_path = tmp_path / "config.yaml"
    data = _base_config(tmp_path)
    data["matching"] = {"dedupe_threshold": 93, "result_match_threshold": 75}
    _write_yaml(cfg_path, data)

    monkeypatch.setenv("MATCHING__DEDUPE_THRESHOLD", "95")

    cfg = load_config(cfg_path)

    assert cfg.matching.dedupe_threshold == 95
    assert cfg.matching.result_match_threshold == 75


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_non_mapping_root_raises(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.yaml"
    _write_yaml(cfg_path, ["not", "a", "mapping"])

    with pytest.raises(ValueError):
        load_config(cfg_path)


def test_get_config_requires_load() -> None:
    with pytest.raises(RuntimeError):
        get_config()


def test_weights_must_sum_to_one() -> None:
    with pytest.raises(ValueError):
        MatchingConfig(weights={"levenshtein": 0.5, "jaro_winkler": 0.6})
    with pytest.raises(ValueError):
        MatchingConfig(weights={"cosine": 1.0})

    cfg = MatchingConfig(weights={"levenshtein": 0.5, "jaro_winkler": 0.5})
    assert cfg.weights == {"levenshtein": 0.5, "jaro_winkler": 0.5, "dice": 0.0, "token_sort": 0.0}


def test_keyword_config_needs_some_keywords(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.yaml"
    data = _base_config(tmp_path)
    data["keywords"] = {"use_builtin_keywords": False}
    _write_yaml(cfg_path, data)

    with pytest.raises(ValueError):
        load_config(cfg_path)


def test_defaults() -> None:
    cfg = Config()

    assert cfg.matching.dedupe_threshold == 90
    assert cfg.matching.similar_name_threshold == 85
    assert cfg.matching.candidate_min_similarity == pytest.approx(0.78)
    assert cfg.matching.adjudication_limit == 50
    assert cfg.logging.level == "INFO"
