"""
bayescall - Bayesian multi-sample genotype calling from aligned reads.

This package provides a command-line interface and Python API that computes,
for every covered position, per-sample genotype posteriors from base calls
and their quality scores.

Example usage:
    $ bayescall run -b sample.bam -f reference.fa -r chr1:1000-2000 -o calls.jsonl
"""

__version__ = "0.3.0"

from .caller import Caller
from .models.core import BayesConfig, ModelConfig, OutputFormat, PositionResult, SampleResult
from .pipeline import Pipeline

__all__ = [
    "__version__",
    "BayesConfig",
    "Caller",
    "ModelConfig",
    "OutputFormat",
    "Pipeline",
    "PositionResult",
    "SampleResult",
]
