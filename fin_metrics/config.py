"""
fin_metrics/config.py
=====================
Runtime settings read from the environment (and a local .env file).
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .formatting import UNIT_DIVISORS


class ConfigError(ValueError):
    """An environment setting has an unusable value."""


@dataclass
class Settings:
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    default_unit: str = "millions"
    comment_language: str = "Japanese"
    log_level: str = "INFO"
    # Lower temperature for comments that quote multi-year figures.
    factual_temperature: float = 0.3
    narrative_temperature: float = 0.7

    @property
    def ai_enabled(self) -> bool:
        return bool(self.openai_api_key)


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from `env` (defaults to os.environ after loading .env).

    Variables: OPENAI_API_KEY, FIN_METRICS_OPENAI_MODEL, FIN_METRICS_DEFAULT_UNIT,
    FIN_METRICS_COMMENT_LANGUAGE, FIN_METRICS_LOG_LEVEL.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    unit = env.get("FIN_METRICS_DEFAULT_UNIT", "millions")
    if unit not in UNIT_DIVISORS:
        raise ConfigError(f"FIN_METRICS_DEFAULT_UNIT must be one of {sorted(UNIT_DIVISORS)}, got {unit!r}")

    level = env.get("FIN_METRICS_LOG_LEVEL", "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"Unknown FIN_METRICS_LOG_LEVEL: {level!r}")

    return Settings(
        openai_api_key=env.get("OPENAI_API_KEY") or None,
        openai_model=env.get("FIN_METRICS_OPENAI_MODEL", "gpt-4o-mini"),
        default_unit=unit,
        comment_language=env.get("FIN_METRICS_COMMENT_LANGUAGE", "Japanese"),
        log_level=level,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
