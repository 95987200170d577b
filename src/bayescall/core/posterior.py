"""
Joint posterior over sample genotype combinations.

Pipeline for one position:

1. Per-sample log-likelihood tables (from the LikelihoodEngine).
2. Dominant combinations. With several samples the cross-product of their
   genotypes grows as |G|^S, so once it exceeds ``max_exact_combinations``
   every sample keeps only its ``top_n`` most likely genotypes and the
   cross-product is taken over those. Combinations outside the retained
   set get zero posterior mass: this is approximate inference and results
   computed this way are flagged ``pruned``.
3. Combination log-likelihood: sum of the samples' log-likelihoods.
4. Combination log-prior from an injectable PriorModel.
5. Posterior normalization with log-sum-exp.
6. Marginalization back to per-sample genotype posteriors, plus the site
   probability of variation (mass of combinations where any sample carries a
   non-reference genotype).
"""

import itertools
import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np
from scipy.special import logsumexp

from ..models.core import ModelConfig, PriorKind
from .genotype import Genotype

logger = logging.getLogger(__name__)

MAX_PHRED = 999.0


def normalize(raw) -> tuple[np.ndarray, bool]:
    """
    Scale non-negative scores to probabilities.

    Returns the probabilities and whether the input was degenerate (zero or
    non-finite total), in which case the result is uniform.
    """
    values = np.asarray(raw, dtype=np.float64)
    if values.size == 0:
        raise ValueError("Cannot normalize an empty score vector")
    if np.any(values < 0):
        raise ValueError("Scores must be non-negative")

    total = values.sum()
    if not np.isfinite(total) or total <= 0.0:
        logger.warning("Degenerate normalization over %d scores; using uniform", values.size)
        return np.full(values.size, 1.0 / values.size), True
    return values / total, False


def normalize_log(log_scores) -> tuple[np.ndarray, bool]:
    """Probabilities from log-scale scores, uniform if every score is -inf."""
    values = np.asarray(log_scores, dtype=np.float64)
    if values.size == 0:
        raise ValueError("Cannot normalize an empty score vector")

    with np.errstate(divide="ignore", invalid="ignore"):
        total = logsumexp(values)
    if not np.isfinite(total):
        logger.warning("Degenerate normalization over %d log scores; using uniform", values.size)
        return np.full(values.size, 1.0 / values.size), True

    probabilities = np.exp(values - total)
    return probabilities / probabilities.sum(), False


def phred_score(posterior: float, error: float | None = None) -> float:
    """
    Phred-scaled confidence ``-10 * log10(1 - posterior)``.

    ``error`` may be passed when the complement is known more precisely than
    ``1 - posterior`` (e.g. as the sum of the competing posteriors).
    """
    err = 1.0 - posterior if error is None else error
    if err <= 0.0:
        return MAX_PHRED
    score = -10.0 * math.log10(min(err, 1.0))
    if score <= 0.0:
        return 0.0
    return min(score, MAX_PHRED)


class PriorModel(ABC):
    """Prior over the genotypes jointly assigned to a position's samples."""

    @abstractmethod
    def log_prior(self, genotypes: Sequence[Genotype]) -> float:
        """Log prior of one genotype combination."""


class UniformPrior(PriorModel):
    def log_prior(self, genotypes: Sequence[Genotype]) -> float:
        return 0.0


class VariantCountPrior(PriorModel):
    """
    Each sample independently carries a non-reference genotype with rate
    ``theta``, so combinations with fewer simultaneous carriers weigh more.
    """

    def __init__(self, theta: float = 0.001):
        if not 0.0 < theta < 1.0:
            raise ValueError(f"theta must be in (0, 1), got {theta}")
        self.theta = theta
        self._log_variant = math.log(theta)
        self._log_reference = math.log1p(-theta)

    def log_prior(self, genotypes: Sequence[Genotype]) -> float:
        variants = sum(1 for g in genotypes if not g.is_reference)
        return variants * self._log_variant + (len(genotypes) - variants) * self._log_reference


def build_prior(config: ModelConfig) -> PriorModel:
    if config.prior == PriorKind.UNIFORM:
        return UniformPrior()
    return VariantCountPrior(config.theta)


@dataclass
class PosteriorResult:
    """Marginal posteriors for one position, aligned with the genotype set."""

    samples: list[str]
    marginals: dict[str, np.ndarray]
    sample_variant_probability: dict[str, float]
    variant_probability: float
    combinations: int
    pruned: bool = False
    degenerate: bool = False
    informative: set[str] = field(default_factory=set)

    def scores(self, sample: str) -> np.ndarray:
        """Phred confidence of every genotype for ``sample``."""
        marginal = self.marginals[sample]
        return np.array(
            [
                phred_score(p, float(np.delete(marginal, i).sum()))
                for i, p in enumerate(marginal)
            ]
        )


class PosteriorEngine:
    """
    Combines per-sample likelihood tables into marginal genotype posteriors.

    Args:
        genotypes: The run's genotype set. Tables must follow its order.
        prior: Prior over genotype combinations.
        top_n: Genotypes kept per sample when pruning.
        max_exact_combinations: Largest cross-product enumerated exactly.
            A single informative sample is always handled exactly.
    """

    def __init__(
        self,
        genotypes: Sequence[Genotype],
        prior: PriorModel | None = None,
        top_n: int = 3,
        max_exact_combinations: int = 256,
    ):
        if top_n < 1:
            raise ValueError("top_n must be at least 1")
        self.genotypes = tuple(genotypes)
        self.prior = prior or UniformPrior()
        self.top_n = top_n
        self.max_exact_combinations = max_exact_combinations
        self._reference = np.array([g.is_reference for g in self.genotypes], dtype=bool)

    def should_prune(self, n_samples: int) -> bool:
        if n_samples <= 1 or self.top_n >= len(self.genotypes):
            return False
        return len(self.genotypes) ** n_samples > self.max_exact_combinations

    def candidates(self, table: np.ndarray, prune: bool) -> list[int]:
        """Genotype indices of one sample that take part in combinations."""
        if prune:
            order = np.argsort(-table, kind="stable")[: self.top_n]
        else:
            order = np.arange(len(table))
        finite = [int(i) for i in order if np.isfinite(table[i])]
        return finite or [int(i) for i in order]

    def compute(
        self, tables: Mapping[str, np.ndarray], samples: Sequence[str] | None = None
    ) -> PosteriorResult:
        """
        Posterior marginals for every sample.

        Samples named in ``samples`` without a table had no observations and
        get a uniform posterior.
        """
        n_genotypes = len(self.genotypes)
        names = list(samples) if samples is not None else []
        names.extend(s for s in tables if s not in names)
        informative = [s for s in names if s in tables]

        for sample in informative:
            if len(tables[sample]) != n_genotypes:
                raise ValueError(
                    f"Likelihood table for {sample!r} has {len(tables[sample])} entries, "
                    f"expected {n_genotypes}"
                )

        prune = self.should_prune(len(informative))
        candidates = [self.candidates(np.asarray(tables[s]), prune) for s in informative]
        if informative:
            combos = np.array(list(itertools.product(*candidates)), dtype=np.intp)
        else:
            combos = np.zeros((1, 0), dtype=np.intp)

        log_posterior = np.zeros(len(combos))
        for j, sample in enumerate(informative):
            log_posterior += np.asarray(tables[sample], dtype=np.float64)[combos[:, j]]
        log_posterior += np.array(
            [self.prior.log_prior([self.genotypes[i] for i in combo]) for combo in combos]
        )

        posterior, degenerate = normalize_log(log_posterior)

        marginals: dict[str, np.ndarray] = {}
        sample_variant: dict[str, float] = {}
        for name in names:
            if name in tables:
                j = informative.index(name)
                marginal, _ = normalize(
                    np.bincount(combos[:, j], weights=posterior, minlength=n_genotypes)
                )
            else:
                marginal = np.full(n_genotypes, 1.0 / n_genotypes)
            marginals[name] = marginal
            sample_variant[name] = float(marginal[~self._reference].sum())

        all_reference = self._reference[combos].all(axis=1)
        variant_probability = float(min(max(posterior[~all_reference].sum(), 0.0), 1.0))

        return PosteriorResult(
            samples=names,
            marginals=marginals,
            sample_variant_probability=sample_variant,
            variant_probability=variant_probability,
            combinations=len(combos),
            pruned=prune,
            degenerate=degenerate,
            informative=set(informative),
        )
