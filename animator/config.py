"""Configuration loading for the animator CLI."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

_DEFAULT_CONFIG = "config.yaml"
_API_KEY_ENV = "GEMINI_API_KEY"
_PLACEHOLDER_KEY = "YOUR_GEMINI_API_KEY"

DEFAULT_POLL_INTERVAL = 10.0


def load_config(config_path: str | Path | None = None) -> dict:
    """Load the YAML configuration file.

    Args:
        config_path: Path to config.yaml. Defaults to ./config.yaml.

    Returns:
        Parsed config dict (empty sections when the file leaves them out).

    Raises:
        FileNotFoundError: If config file doesn't exist.
    """
    path = Path(config_path or _DEFAULT_CONFIG)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    for section in ("api", "generation", "output"):
        config.setdefault(section, {})
    return config


def get_api_key(config: dict) -> str | None:
    """Return the configured API key, or None when only the placeholder is set.

    The ``GEMINI_API_KEY`` environment variable takes precedence over the file.
    """
    api_key = os.environ.get(_API_KEY_ENV) or config.get("api", {}).get("api_key", "")
    if not api_key or api_key == _PLACEHOLDER_KEY:
        return None
    return api_key


def get_poll_interval(config: dict) -> float:
    return float(config.get("generation", {}).get("poll_interval", DEFAULT_POLL_INTERVAL))


def get_max_wait(config: dict) -> float | None:
    """Upper bound on polling time in seconds; None polls until the job ends."""
    value = config.get("generation", {}).get("max_wait")
    return float(value) if value is not None else None


def get_output_dir(config: dict) -> Path:
    return Path(config.get("output", {}).get("dir", "output"))


def client_kwargs(config: dict) -> dict:
    """Keyword arguments for ``VeoClient`` taken from the api/generation sections."""
    api = config.get("api", {})
    generation = config.get("generation", {})
    kwargs: dict = {}
    if api.get("base_url"):
        kwargs["base_url"] = api["base_url"]
    if api.get("model"):
        kwargs["model"] = api["model"]
    if generation.get("resolution"):
        kwargs["resolution"] = generation["resolution"]
    if generation.get("number_of_videos"):
        kwargs["number_of_videos"] = int(generation["number_of_videos"])
    return kwargs
