"""Configuration and environment helpers for the project.

Provides small helpers to read typed environment variables and exposes
project-level configuration constants used across the codebase (e.g.
DATA_ROOT, CACHE_TIMEOUT_MS, CACHE_POLICY and LOG_LEVEL).
"""

from __future__ import annotations

import os
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    return value if value in choices else default


# Directory holding one sub-directory per collection
DATA_ROOT = Path(os.environ.get("DATA_ROOT", "data")).resolve()

# Cache
CACHE_TIMEOUT_MS = _env_float("CACHE_TIMEOUT_MS", 60_000.0)
CACHE_POLICY = _env_choice("CACHE_POLICY", "sweep", ("sweep", "timer"))
CACHE_SWEEP_INTERVAL_MS = _env_float("CACHE_SWEEP_INTERVAL_MS", 1_000.0)
CACHE_SHARDS = _env_int("CACHE_SHARDS", 16)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
