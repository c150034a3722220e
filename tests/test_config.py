from pathlib import Path

import pytest
import yaml

from scenic_roads.config import ConfigError, ScenicRoadsConfig


def test_defaults_are_valid():
    cfg = ScenicRoadsConfig()
    assert cfg.validate() == []
    assert cfg.api.elevation_api_url == "https://api.open-elevation.com"
    assert cfg.enrichment.arcgis_layers == [0]
    assert isinstance(cfg.paths.output_dir, Path)


def test_yaml_round_trip(tmp_path):
    cfg = ScenicRoadsConfig()
    cfg.paths.output_dir = tmp_path / "out"
    cfg.api.rate_limit_per_second = 3
    cfg.enrichment.wiki_enabled = False

    path = tmp_path / "scenic.yaml"
    cfg.save_to_file(path)
    loaded = ScenicRoadsConfig.load_from_file(path)

    assert loaded.paths.output_dir == tmp_path / "out"
    assert loaded.api.rate_limit_per_second == 3
    assert loaded.enrichment.wiki_enabled is False
    assert loaded.to_dict() == cfg.to_dict()


def test_json_round_trip(tmp_path):
    path = tmp_path / "scenic.json"
    ScenicRoadsConfig().save_to_file(path)
    assert ScenicRoadsConfig.load_from_file(path).to_dict() == ScenicRoadsConfig().to_dict()


def test_partial_file_keeps_other_defaults(tmp_path):
    path = tmp_path / "scenic.yml"
    path.write_text(yaml.safe_dump({"api": {"request_timeout": 5}}))
    cfg = ScenicRoadsConfig.load_from_file(path)
    assert cfg.api.request_timeout == 5
    assert cfg.api.user_agent.startswith("ScenicRoads/")
    assert cfg.enrichment.elevation_enabled is True


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ScenicRoadsConfig.load_from_file(tmp_path / "absent.yaml")


def test_unknown_key_raises_config_error(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({"api": {"no_such_option": 1}}))
    with pytest.raises(ConfigError, match="api"):
        ScenicRoadsConfig.load_from_file(path)


def test_non_mapping_root_raises_config_error(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigError):
        ScenicRoadsConfig.load_from_file(path)


def test_validate_reports_bad_values():
    cfg = ScenicRoadsConfig()
    cfg.api.request_timeout = 0
    cfg.api.rate_limit_per_second = -1
    cfg.enrichment.arcgis_layers = []
    issues = cfg.validate()
    assert len(issues) == 3
    assert any("request_timeout" in i for i in issues)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SCENIC_ELEVATION_API_URL", "http://localhost:8080")
    monkeypatch.setenv("SCENIC_LOG_LEVEL", "DEBUG")
    cfg = ScenicRoadsConfig().apply_env()
    assert cfg.api.elevation_api_url == "http://localhost:8080"
    assert cfg.logging.level == "DEBUG"


def test_ai_is_off_by_default_and_env_configurable(monkeypatch):
    monkeypatch.setenv("SCENIC_AI_API_URL", "http://localhost:11434/v1/chat/completions")
    monkeypatch.setenv("SCENIC_AI_MODEL", "qwen3")
    cfg = ScenicRoadsConfig().apply_env()
    assert cfg.enrichment.ai_enabled is False
    assert cfg.api.ai_api_url == "http://localhost:11434/v1/chat/completions"
    assert cfg.api.ai_model == "qwen3"


def test_validate_flags_ai_without_model():
    cfg = ScenicRoadsConfig()
    cfg.enrichment.ai_enabled = True
    cfg.api.ai_model = ""
    assert any("ai_model" in issue for issue in cfg.validate())
