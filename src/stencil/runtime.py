"""Configuration loading & bootstrap."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from stencil.domain.models import EngineConfig
from stencil.infrastructure.logging import setup_logging

DEFAULT_CONFIG_PATH = Path("stencil.yaml")

_ENV_OVERRIDES = {
    "STENCIL_TEMPLATE_DIR": "template_dir",
    "STENCIL_CACHE_DIR": "cache_dir",
}


def load_config(path: Path, overrides: dict[str, Any] | None = None) -> EngineConfig:
    """Read a YAML mapping into EngineConfig; a missing file means defaults.

    Relative directories are taken relative to the config file.
    """
    data: dict[str, Any] = {}
    if path.exists():
        loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config root must be a mapping: {path}")
        data = loaded
        for key in ("template_dir", "cache_dir"):
            if data.get(key) and not Path(data[key]).is_absolute():
                data[key] = path.parent / data[key]
    data.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return EngineConfig(**data)


def bootstrap(config_path: Path | None = None, log_level: str | None = None) -> EngineConfig:
    """Load .env, set up logging and return the effective engine config."""
    load_dotenv(override=False)
    setup_logging(log_level)
    cfg_path = config_path or Path(os.getenv("STENCIL_CONFIG", str(DEFAULT_CONFIG_PATH)))
    env = {field: os.getenv(var) for var, field in _ENV_OVERRIDES.items()}
    return load_config(cfg_path, env)


__all__ = ["DEFAULT_CONFIG_PATH", "bootstrap", "load_config"]
