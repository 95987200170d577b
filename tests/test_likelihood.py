"""Tests for per-sample data likelihoods."""

import math

import numpy as np
import pytest

from bayescall.core.allele import alphabet_alleles
from bayescall.core.genotype import generate_genotypes
from bayescall.core.likelihood import MISMATCH_DIVISOR, LikelihoodEngine, phred_to_error
from bayescall.errors import PoolMisuseError
from bayescall.models.core import AlleleType


@pytest.fixture
def engine() -> LikelihoodEngine:
    return LikelihoodEngine(generate_genotypes(alphabet_alleles(["R", "A", "T", "G", "C"]), 2))


def index_of(engine: LikelihoodEngine, label: str) -> int:
    return [g.label for g in engine.genotypes].index(label)


def test_phred_to_error():
    assert phred_to_error(30) == pytest.approx(0.001)
    assert phred_to_error(0) == pytest.approx(1.0)
    np.testing.assert_allclose(phred_to_error([10, 20]), [0.1, 0.01])


def test_mismatch_policy_splits_error_over_other_bases(engine, observe):
    table = engine.table(observe("S1", "A", 1, quality=20, reference="C"), "C")
    e = 0.01

    assert MISMATCH_DIVISOR == 3
    assert table[index_of(engine, "A/A")] == pytest.approx(math.log(1 - e))
    assert table[index_of(engine, "R/R")] == pytest.approx(math.log(e / 3))
    assert table[index_of(engine, "R/A")] == pytest.approx(math.log(0.5 * (1 - e) + 0.5 * e / 3))
    assert table[index_of(engine, "G/T")] == pytest.approx(math.log(e / 3))


def test_homozygous_alt_dominates_uniform_alt_reads(engine, observe):
    table = engine.table(observe("S1", "A", 10, quality=30), "T")

    assert int(np.argmax(table)) == index_of(engine, "A/A")
    assert table[index_of(engine, "A/A")] == pytest.approx(10 * math.log(0.999))
    assert table[index_of(engine, "R/R")] < table[index_of(engine, "R/A")]


def test_snp_equal_to_reference_is_masked(engine, observe):
    table = engine.table(observe("S1", "A", 3), "T")

    for label in ("R/T", "A/T", "T/T", "T/G", "T/C"):
        assert table[index_of(engine, label)] == -np.inf
    assert np.isfinite(table[index_of(engine, "R/R")])


def test_heterozygous_reads_favor_het(engine, observe):
    alleles = observe("S1", "A", 5, reference="C") + observe("S1", "T", 5, reference="C")
    table = engine.table(alleles, "C")

    assert int(np.argmax(table)) == index_of(engine, "A/T")


def test_zero_observations_are_uninformative(engine):
    table = engine.table([], "T")
    assert table.shape == (15,)
    assert np.all(table == 0.0)


def test_higher_quality_sharpens_matching_genotype(engine, observe):
    low = engine.table(observe("S1", "A", 1, quality=10), "T")
    high = engine.table(observe("S1", "A", 1, quality=30), "T")

    aa = index_of(engine, "A/A")
    for label in ("R/R", "G/G", "R/G", "C/C"):
        other = index_of(engine, label)
        assert high[aa] - high[other] > low[aa] - low[other]


def test_scalar_likelihood_matches_table(engine, observe):
    alleles = observe("S1", "A", 4, quality=25) + observe("S1", "T", 3, quality=15)
    table = engine.table(alleles, "T")

    for i, genotype in enumerate(engine.genotypes):
        scalar = engine.log_likelihood(alleles, genotype, "T")
        if np.isinf(table[i]):
            assert scalar == -math.inf
        else:
            assert scalar == pytest.approx(table[i])


def test_table_pairs_follow_genotype_order(engine, observe):
    pairs = engine.table_pairs(observe("S1", "G", 2), "T")
    assert [g for g, _ in pairs] == list(engine.genotypes)


def test_indel_observations_are_rejected(engine, pool):
    indel = pool.acquire(AlleleType.INDEL, "", 1, "S1", 0, 10, "+")
    with pytest.raises(ValueError, match="filter indels"):
        engine.table([indel], "T")


def test_released_observation_is_rejected(engine, pool, observe):
    alleles = observe("S1", "A", 2)
    pool.release(alleles[0])
    with pytest.raises(PoolMisuseError):
        engine.table(alleles, "T")


def test_triploid_uses_mean_over_alleles(observe):
    engine = LikelihoodEngine(generate_genotypes(alphabet_alleles(["R", "A"]), 3))
    table = engine.table(observe("S1", "A", 1, quality=20, reference="C"), "C")
    labels = [g.label for g in engine.genotypes]

    e = 0.01
    expected = (2 * (e / 3) + (1 - e)) / 3
    assert table[labels.index("R/R/A")] == pytest.approx(math.log(expected))
