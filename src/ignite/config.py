"""Configuration management for Ignite."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG = {
    "claude_model": "claude-sonnet-4-20250514",
    "naming": {
        "backend": "claude",  # claude | rules
        "batch_size": 20,
        "max_tokens": 4096,
        "temperature": 0.3,
        "max_retries": 3,
        "concurrency": 4,
        "timeout": 120.0,
    },
    "summaries": {"max_representative_titles": 5, "max_common_tags": 5},
    "evolution": {"rename_threshold": 0.6, "remap_threshold": 0.2},
    # USD per million tokens
    "pricing": {
        "claude-sonnet-4-20250514": {"input": 3.0, "output": 15.0},
        "claude-opus-4-20250514": {"input": 15.0, "output": 75.0},
        "claude-3-5-haiku-20241022": {"input": 0.8, "output": 4.0},
    },
}


def _find_config_file() -> Path | None:
    """Look for config.yaml in standard locations."""
    candidates = [
        Path.cwd() / "config" / "config.yaml",
        Path.cwd() / "config.yaml",
        Path.home() / ".ignite" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else _find_config_file()
    if path and path.exists():
        with open(path) as f:
            file_cfg = yaml.safe_load(f) or {}
        if not isinstance(file_cfg, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        _deep_merge(cfg, file_cfg)

    # Env overrides
    if api_key := os.environ.get("ANTHROPIC_API_KEY"):
        cfg["claude_api_key"] = api_key
    if model := os.environ.get("IGNITE_MODEL"):
        cfg["claude_model"] = model

    return cfg


def estimate_cost(config: dict[str, Any], model: str, input_tokens: int, output_tokens: int) -> float:
    """Estimated USD cost of a run; 0 for models without a price entry."""
    prices = config.get("pricing", {}).get(model)
    if not prices:
        return 0.0
    return (input_tokens * prices.get("input", 0.0) + output_tokens * prices.get("output", 0.0)) / 1_000_000


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
