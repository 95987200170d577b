"""
Per-position genotype calling.

The Caller pulls one position at a time from an observation feed, runs
grouping, likelihoods and posteriors, and hands every allele back to its
arena before the next position is requested. A position either yields a
complete PositionResult or nothing.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from .core.allele import AllelePool, alphabet_alleles
from .core.genotype import generate_genotypes
from .core.grouping import PositionObservations, group_alleles_by_sample, split_indels
from .core.kernel import CoordinateKernel
from .core.likelihood import LikelihoodEngine
from .core.posterior import PosteriorEngine, PosteriorResult, build_prior
from .models.core import ModelConfig, PositionResult, SampleResult

logger = logging.getLogger(__name__)


@dataclass
class CallerStats:
    positions: int = 0
    empty: int = 0
    reported: int = 0
    below_threshold: int = 0
    degenerate: int = 0
    pruned: int = 0
    indels_skipped: int = 0

    def merge(self, other: "CallerStats") -> None:
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(self, name) + getattr(other, name))


class Caller:
    """
    Genotype caller for a stream of positions.

    Args:
        model: Genotype model parameters.
        pool: Arena the feed acquires alleles from. Every allele of a
            processed position is released back to it.
        samples: Samples expected at every position. Samples without
            observations at a position still get a (uniform) posterior.
    """

    def __init__(
        self,
        model: ModelConfig,
        pool: AllelePool | None = None,
        samples: Sequence[str] | None = None,
    ):
        self.model = model
        self.pool = pool if pool is not None else AllelePool()
        self.samples = list(samples or [])
        self.genotypes = generate_genotypes(alphabet_alleles(model.alphabet), model.ploidy)
        self.likelihood = LikelihoodEngine(self.genotypes)
        self.posterior = PosteriorEngine(
            self.genotypes,
            prior=build_prior(model),
            top_n=model.top_n,
            max_exact_combinations=model.max_exact_combinations,
        )
        self.stats = CallerStats()
        self._cancelled = False

        logger.debug(
            "Genotype set (ploidy %d): %s",
            model.ploidy,
            ", ".join(g.label for g in self.genotypes),
        )

    def cancel(self) -> None:
        """Stop before the next position is processed."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def run(self, feed: Iterable[PositionObservations]) -> Iterator[PositionResult]:
        for observations in feed:
            if self._cancelled:
                self.pool.release_all(observations.alleles)
                logger.info(
                    "Calling cancelled before %s:%d",
                    observations.sequence,
                    CoordinateKernel.internal_to_output(observations.position),
                )
                break
            result = self.call_position(observations)
            if result is not None:
                yield result

    def call_position(self, observations: PositionObservations) -> PositionResult | None:
        """Call one position; returns None for positions without usable data."""
        self.stats.positions += 1
        try:
            return self._call(observations)
        finally:
            self.pool.release_all(observations.alleles)

    def _call(self, observations: PositionObservations) -> PositionResult | None:
        if not observations.alleles:
            self.stats.empty += 1
            return None

        tables = {}
        coverage = {}
        for sample, alleles in group_alleles_by_sample(observations.alleles).items():
            usable, indels = split_indels(alleles)
            if indels:
                self.stats.indels_skipped += len(indels)
            if usable:
                tables[sample] = self.likelihood.table(usable, observations.reference)
                coverage[sample] = len(usable)

        if not tables:
            self.stats.empty += 1
            return None

        result = self.posterior.compute(tables, self.samples)
        if result.degenerate:
            self.stats.degenerate += 1
            logger.warning(
                "Degenerate posterior at %s:%d; reporting uniform combination weights",
                observations.sequence,
                CoordinateKernel.internal_to_output(observations.position),
            )
        if result.pruned:
            self.stats.pruned += 1

        if result.variant_probability < self.model.min_variant_probability:
            self.stats.below_threshold += 1
            return None

        self.stats.reported += 1
        return self._to_position_result(observations, result, coverage)

    def _to_position_result(
        self,
        observations: PositionObservations,
        result: PosteriorResult,
        coverage: dict[str, int],
    ) -> PositionResult:
        labels = [g.label for g in self.genotypes]
        samples = {}
        for name in result.samples:
            marginal = result.marginals[name]
            samples[name] = SampleResult(
                coverage=coverage.get(name, 0),
                posteriors=dict(zip(labels, marginal.tolist())),
                scores=dict(zip(labels, result.scores(name).tolist())),
                variant_probability=result.sample_variant_probability[name],
                informative=name in result.informative,
            )

        return PositionResult(
            sequence=observations.sequence,
            position=CoordinateKernel.internal_to_output(observations.position),
            reference=observations.reference,
            variant_probability=result.variant_probability,
            combinations=result.combinations,
            pruned=result.pruned,
            degenerate=result.degenerate,
            samples=samples,
        )
