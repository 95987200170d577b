"""Tests for observation grouping."""

import pytest

from bayescall.core.grouping import group_alleles_by_sample, split_indels
from bayescall.errors import PoolMisuseError
from bayescall.models.core import AlleleType


def test_groups_partition_by_sample_in_stable_order(pool):
    alleles = [
        pool.acquire(AlleleType.SNP, "A", 1, "S2", 30, 10, "+"),
        pool.acquire(AlleleType.REFERENCE, "T", 1, "S1", 31, 10, "+"),
        pool.acquire(AlleleType.SNP, "G", 1, "S2", 32, 10, "-"),
        pool.acquire(AlleleType.SNP, "C", 1, "S1", 33, 10, "-"),
    ]

    groups = group_alleles_by_sample(alleles)

    assert list(groups) == ["S2", "S1"]
    assert [a.quality for a in groups["S2"]] == [30, 32]
    assert [a.quality for a in groups["S1"]] == [31, 33]
    assert sum(len(g) for g in groups.values()) == len(alleles)
    for sample, group in groups.items():
        assert all(a.sample == sample for a in group)


def test_empty_input_gives_no_groups():
    assert group_alleles_by_sample([]) == {}


def test_released_allele_is_rejected(pool):
    allele = pool.acquire(AlleleType.SNP, "A", 1, "S1", 30, 10, "+")
    pool.release(allele)

    with pytest.raises(PoolMisuseError):
        group_alleles_by_sample([allele])


def test_split_indels(pool):
    snp = pool.acquire(AlleleType.SNP, "A", 1, "S1", 30, 10, "+")
    indel = pool.acquire(AlleleType.INDEL, "", 1, "S1", 0, 10, "+")
    ref = pool.acquire(AlleleType.REFERENCE, "T", 1, "S1", 30, 10, "+")

    usable, indels = split_indels([snp, indel, ref])

    assert usable == [snp, ref]
    assert indels == [indel]
