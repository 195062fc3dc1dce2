"""Typed environment lookups; malformed values fall back to the default"""
import os
from typing import Optional


def env_str(key: str, default: str = "") -> str:
    return os.getenv(key) or default


def env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key) or default)
    except ValueError:
        return default


def env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key) or default)
    except ValueError:
        return default


def env_bool(key: str, default: bool = False) -> bool:
    value: Optional[str] = os.getenv(key)
    if not value:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def current_env() -> str:
    return os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
