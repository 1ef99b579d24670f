import os
from pathlib import Path
from typing import Optional

import yaml

from commitlens_core.analysis.repair import DEFAULT_SENTINEL_TOKENS

DEFAULT_CONFIG: dict = {
    "provider": "anthropic",  # anthropic | openai | ollama
    "model_name": None,  # None = the provider's default model
    "ollama_url": "http://localhost:11434",
    "request_timeout": 120,
    "max_chars_per_file": 100000,  # per revision, before diffing
    "max_lines_per_file": 1000,  # per revision, before diffing
    "max_diff_chars": 20000,  # rendered diff sent to the model
    "diff_source": "engine",  # engine = built-in line diff; git = the adapter's unified diff
    "guidelines": None,  # None = use built-in default; set to a path string to override
    "exclude": [],  # fnmatch patterns or directory names to skip (e.g. "migrations/", "*.min.js")
    "max_workers": 1,  # files analysed in parallel per commit
    "sentinel_tokens": list(DEFAULT_SENTINEL_TOKENS),  # chat-template tokens stripped from replies
    "store": "noop",
}

BUILTIN_GUIDELINES_DIR = Path(__file__).parent / "guidelines"
_BUILTIN_DEFAULT = BUILTIN_GUIDELINES_DIR / "criteria.md"

_LIST_KEYS = ("exclude", "sentinel_tokens")


def load_config(config_path: str = ".commitlens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .commitlens.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, **{key: list(DEFAULT_CONFIG[key]) for key in _LIST_KEYS}}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    if os.environ.get("OLLAMA_HOST"):
        config["ollama_url"] = os.environ["OLLAMA_HOST"]

    return config


def load_guidelines(config: dict) -> str:
    """
    Load the scoring rubric sent with every prompt.

    If ``guidelines`` is set in config, loads from that path (relative to cwd).
    Otherwise falls back to the built-in default.
    """
    custom_path = config.get("guidelines")
    if custom_path:
        p = Path(custom_path)
        if not p.exists():
            raise FileNotFoundError(f"Guidelines file not found: {custom_path}")
        return p.read_text()

    if _BUILTIN_DEFAULT.exists():
        return _BUILTIN_DEFAULT.read_text()

    raise FileNotFoundError("No guidelines configured and built-in default is missing.")
