"""
Data likelihoods P(observed bases | genotype).

Each observed base is an independent draw given the genotype. A base with
Phred quality Q has error probability e = 10^(-Q/10). For a hypothesis
allele g:

    P(base | g) = 1 - e               if the base equals g's sequence
                  e / MISMATCH_DIVISOR otherwise

where the error mass is split uniformly over the other nucleotides, so the
divisor is 3. For a genotype {g1, ..., gk} the per-base probability is the
mean over its alleles (0.5/0.5 for diploid). Per-sample likelihoods are
accumulated as sums of logs to avoid underflow at high depth.
"""

import logging
import math
from collections.abc import Sequence

import numpy as np

from ..errors import PoolMisuseError
from ..models.core import NUCLEOTIDES, AlleleType
from .allele import Allele
from .genotype import Genotype

logger = logging.getLogger(__name__)

MISMATCH_DIVISOR = len(NUCLEOTIDES) - 1


def phred_to_error(quality):
    """Convert Phred quality (scalar or array) to an error probability."""
    return np.power(10.0, -np.asarray(quality, dtype=np.float64) / 10.0)


class LikelihoodEngine:
    """
    Computes log-likelihood tables over a fixed genotype set.

    Args:
        genotypes: The run's genotype set; tables follow its order.
        mismatch_divisor: Number of ways a base call error can land on a
            wrong base.
    """

    def __init__(self, genotypes: Sequence[Genotype], mismatch_divisor: int = MISMATCH_DIVISOR):
        if mismatch_divisor < 1:
            raise ValueError("mismatch_divisor must be at least 1")
        self.genotypes = tuple(genotypes)
        self.mismatch_divisor = mismatch_divisor

        # Hypothesis alleles by alphabet index, recovered from the genotypes
        alphabet: dict[int, Allele] = {}
        for genotype in self.genotypes:
            for index, allele in zip(genotype.indices, genotype.alleles):
                alphabet.setdefault(index, allele)
        self.alphabet = [alphabet[i] for i in sorted(alphabet)]
        position_of = {index: i for i, index in enumerate(sorted(alphabet))}
        self._genotype_index = np.array(
            [[position_of[i] for i in g.indices] for g in self.genotypes], dtype=np.intp
        )

    def hypothesis_sequences(self, reference: str | None) -> list[str]:
        """Alphabet sequences with the Reference hypothesis resolved to ``reference``."""
        ref = (reference or "N").upper()
        return [ref if a.kind == AlleleType.REFERENCE else a.sequence for a in self.alphabet]

    def redundant_mask(self, reference: str | None) -> np.ndarray:
        """
        Genotypes carrying an SNP hypothesis equal to the reference base.

        Such an SNP duplicates the Reference hypothesis at this position and
        the genotypes that contain it are given zero likelihood.
        """
        ref = (reference or "").upper()
        redundant = np.array(
            [a.kind == AlleleType.SNP and a.sequence == ref for a in self.alphabet], dtype=bool
        )
        return redundant[self._genotype_index].any(axis=1)

    def table(self, observations: Sequence[Allele], reference: str | None) -> np.ndarray:
        """
        Log-likelihood of ``observations`` under every genotype.

        A sample with no observations gets an all-zero (uniform) vector.
        """
        n = len(self.genotypes)
        if not observations:
            return np.zeros(n, dtype=np.float64)

        _validate(observations)

        bases = np.array([a.sequence for a in observations])
        err = phred_to_error([a.quality for a in observations])
        hypotheses = np.array(self.hypothesis_sequences(reference))

        match = bases[:, None] == hypotheses[None, :]
        per_allele = np.where(match, (1.0 - err)[:, None], (err / self.mismatch_divisor)[:, None])
        per_genotype = per_allele[:, self._genotype_index].mean(axis=2)

        with np.errstate(divide="ignore"):
            log_table = np.log(per_genotype).sum(axis=0)

        log_table[self.redundant_mask(reference)] = -np.inf
        return log_table

    def table_pairs(
        self, observations: Sequence[Allele], reference: str | None
    ) -> list[tuple[Genotype, float]]:
        return list(zip(self.genotypes, self.table(observations, reference).tolist()))

    def log_likelihood(
        self, observations: Sequence[Allele], genotype: Genotype, reference: str | None
    ) -> float:
        """Log-likelihood of ``observations`` under a single genotype."""
        _validate(observations)
        ref = (reference or "N").upper()
        hypotheses = [ref if a.kind == AlleleType.REFERENCE else a.sequence for a in genotype.alleles]
        if any(a.kind == AlleleType.SNP and a.sequence == ref for a in genotype.alleles):
            return -math.inf

        total = 0.0
        for allele in observations:
            e = float(phred_to_error(allele.quality))
            p = sum(
                (1.0 - e) if allele.sequence == h else e / self.mismatch_divisor for h in hypotheses
            ) / len(hypotheses)
            if p <= 0.0:
                return -math.inf
            total += math.log(p)
        return total


def _validate(observations: Sequence[Allele]) -> None:
    for allele in observations:
        if allele.released:
            raise PoolMisuseError(f"Use of released allele slot {allele.handle}")
        if allele.kind == AlleleType.INDEL:
            raise ValueError(
                f"Indel observation at {allele.position} for sample {allele.sample!r} "
                "cannot be scored; filter indels before computing likelihoods"
            )
