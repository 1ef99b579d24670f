"""Tests for configuration loading."""

import pytest

from commitlens_core.analysis.repair import DEFAULT_SENTINEL_TOKENS
from commitlens_core.config import load_config, load_guidelines


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["provider"] == "anthropic"
    assert config["model_name"] is None
    assert config["max_workers"] == 1
    assert config["max_lines_per_file"] == 1000
    assert config["diff_source"] == "engine"
    assert config["guidelines"] is None
    assert config["exclude"] == []
    assert config["store"] == "noop"
    assert config["sentinel_tokens"] == list(DEFAULT_SENTINEL_TOKENS)


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".commitlens.yml"
    cfg.write_text("provider: ollama\nmax_workers: 4\nmax_diff_chars: 5000\n")
    config = load_config(config_path=str(cfg))
    assert config["provider"] == "ollama"
    assert config["max_workers"] == 4
    assert config["max_diff_chars"] == 5000


def test_empty_config_file(tmp_path):
    cfg = tmp_path / ".commitlens.yml"
    cfg.write_text("")
    assert load_config(config_path=str(cfg))["provider"] == "anthropic"


def test_exclude_patterns_loaded(tmp_path):
    cfg = tmp_path / ".commitlens.yml"
    cfg.write_text("exclude:\n  - migrations/\n  - '*.min.js'\n")
    config = load_config(config_path=str(cfg))
    assert "migrations/" in config["exclude"]
    assert "*.min.js" in config["exclude"]


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".commitlens.yml"
    cfg.write_text("provider: openai\n")
    config = load_config(config_path=str(cfg), cli_overrides={"provider": "anthropic"})
    assert config["provider"] == "anthropic"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".commitlens.yml"
    cfg.write_text("provider: openai\n")
    config = load_config(config_path=str(cfg), cli_overrides={"provider": None})
    assert config["provider"] == "openai"


def test_custom_guidelines_path(tmp_path):
    guidelines_file = tmp_path / "my-rubric.md"
    guidelines_file.write_text("# Custom Rubric\n- Rule 1")
    cfg = tmp_path / ".commitlens.yml"
    cfg.write_text(f"guidelines: {guidelines_file}\n")
    config = load_config(config_path=str(cfg))
    content = load_guidelines(config)
    assert "Custom Rubric" in content


def test_builtin_guidelines_loaded_as_fallback():
    config = load_config(config_path="nonexistent.yml")
    content = load_guidelines(config)
    assert len(content) > 0


def test_missing_custom_guidelines_raises(tmp_path):
    config = {"guidelines": str(tmp_path / "does-not-exist.md")}
    with pytest.raises(FileNotFoundError):
        load_guidelines(config)


def test_env_vars_loaded(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "ant-key")
    monkeypatch.setenv("OPENAI_API_KEY", "oai-key")
    config = load_config(config_path="nonexistent.yml")
    assert config["github_token"] == "gh-token"
    assert config["anthropic_api_key"] == "ant-key"
    assert config["openai_api_key"] == "oai-key"


def test_ollama_host_env_overrides_url(tmp_path, monkeypatch):
    cfg = tmp_path / ".commitlens.yml"
    cfg.write_text("ollama_url: http://from-file:11434\n")
    monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434")
    assert load_config(config_path=str(cfg))["ollama_url"] == "http://gpu-box:11434"


def test_ollama_url_from_file_without_env(tmp_path, monkeypatch):
    monkeypatch.delenv("OLLAMA_HOST", raising=False)
    cfg = tmp_path / ".commitlens.yml"
    cfg.write_text("ollama_url: http://from-file:11434\n")
    assert load_config(config_path=str(cfg))["ollama_url"] == "http://from-file:11434"


def test_list_defaults_are_not_shared_references(tmp_path):
    """Mutating one config's lists must not affect another."""
    config_a = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_b = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_a["exclude"].append("migrations/")
    config_a["sentinel_tokens"].append("<eos>")
    assert config_b["exclude"] == []
    assert "<eos>" not in config_b["sentinel_tokens"]
