"""Adaptive metabolic estimation and body composition projection.

Turns daily weight and intake logs into a confidence-scored TDEE
estimate, projects bodyweight under a planned intake, and splits the
projected change into fat and lean mass.
"""

from metabolic.cache import ResultCache, cache_key, content_hash
from metabolic.config import Settings
from metabolic.engine import EngineInputs, EngineReport, run_engine
from metabolic.errors import ConfigError, InvalidInputError, MetabolicError
from metabolic.serialization import serialize_report

__all__ = [
    "ConfigError",
    "EngineInputs",
    "EngineReport",
    "InvalidInputError",
    "MetabolicError",
    "ResultCache",
    "Settings",
    "cache_key",
    "content_hash",
    "run_engine",
    "serialize_report",
]
