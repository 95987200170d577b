"""
Data models for bayescall.

Provides Pydantic models for configuration and per-position results.
"""

from .core import (
    AlleleType,
    BayesConfig,
    GenomicInterval,
    ModelConfig,
    OutputFormat,
    PositionResult,
    PriorKind,
    SampleResult,
)

__all__ = [
    "AlleleType",
    "BayesConfig",
    "GenomicInterval",
    "ModelConfig",
    "OutputFormat",
    "PositionResult",
    "PriorKind",
    "SampleResult",
]
