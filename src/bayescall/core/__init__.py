"""
Core module for bayescall.

Provides the allele arena, genotype combinator, likelihood and posterior
engines, and the coordinate kernel.
"""

from .allele import Allele, AllelePool, alphabet_alleles, genotype_allele
from .genotype import Genotype, generate_genotypes, multichoose
from .grouping import PositionObservations, group_alleles_by_sample, split_indels
from .kernel import CoordinateKernel
from .likelihood import LikelihoodEngine, phred_to_error
from .posterior import (
    PosteriorEngine,
    PosteriorResult,
    PriorModel,
    UniformPrior,
    VariantCountPrior,
    build_prior,
    normalize,
    normalize_log,
    phred_score,
)

__all__ = [
    "Allele",
    "AllelePool",
    "CoordinateKernel",
    "Genotype",
    "LikelihoodEngine",
    "PositionObservations",
    "PosteriorEngine",
    "PosteriorResult",
    "PriorModel",
    "UniformPrior",
    "VariantCountPrior",
    "alphabet_alleles",
    "build_prior",
    "generate_genotypes",
    "genotype_allele",
    "group_alleles_by_sample",
    "multichoose",
    "normalize",
    "normalize_log",
    "phred_score",
    "phred_to_error",
    "split_indels",
]
