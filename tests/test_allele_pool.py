"""Tests for allele records and the recycling arena."""

import pytest

from bayescall.core.allele import Allele, AllelePool, alphabet_alleles, genotype_allele
from bayescall.errors import PoolMisuseError
from bayescall.models.core import AlleleType


def test_acquire_allocates_sequential_handles():
    pool = AllelePool()
    a = pool.acquire(AlleleType.SNP, "A", 1, "S1", 30, 10, "+")
    b = pool.acquire(AlleleType.REFERENCE, "T", 1, "S2", 20, 10, "-")

    assert (a.handle, b.handle) == (0, 1)
    assert len(pool) == 2
    assert pool.live == 2
    assert pool.free == 0


def test_release_then_acquire_reuses_slot_and_overwrites_fields():
    pool = AllelePool()
    a = pool.acquire(AlleleType.SNP, "A", 1, "S1", 30, 10, "+")
    pool.release(a)

    b = pool.acquire(AlleleType.REFERENCE, "T", 1, "S2", 12, 42, "-")

    assert b is a
    assert len(pool) == 1
    assert (b.kind, b.sequence, b.sample, b.quality, b.position, b.strand) == (
        AlleleType.REFERENCE,
        "T",
        "S2",
        12,
        42,
        "-",
    )
    assert not b.released


def test_pool_never_shrinks():
    pool = AllelePool()
    alleles = [pool.acquire(AlleleType.SNP, "C", 1, "S1", 30, i, "+") for i in range(5)]
    pool.release_all(alleles)

    assert len(pool) == 5
    assert pool.live == 0
    assert pool.free == 5


def test_debug_double_release_raises():
    pool = AllelePool(debug=True)
    a = pool.acquire(AlleleType.SNP, "A", 1, "S1", 30, 10, "+")
    pool.release(a)

    with pytest.raises(PoolMisuseError):
        pool.release(a)


def test_debug_release_poisons_record():
    pool = AllelePool(debug=True)
    a = pool.acquire(AlleleType.SNP, "A", 1, "S1", 30, 10, "+")
    pool.release(a)

    assert a.sequence is None
    assert a.quality == -1
    with pytest.raises(PoolMisuseError):
        pool.get(a.handle)
    with pytest.raises(PoolMisuseError):
        AllelePool.check(a)


def test_release_mode_double_release_is_contained():
    pool = AllelePool(debug=False)
    a = pool.acquire(AlleleType.SNP, "A", 1, "S1", 30, 10, "+")
    pool.release(a)
    pool.release(a)

    first = pool.acquire(AlleleType.SNP, "G", 1, "S1", 30, 11, "+")
    second = pool.acquire(AlleleType.SNP, "C", 1, "S1", 30, 12, "+")

    assert first is not second
    assert first.sequence == "G"
    assert second.sequence == "C"


def test_release_of_foreign_allele_raises():
    pool = AllelePool()
    other = AllelePool()
    a = other.acquire(AlleleType.SNP, "A", 1, "S1", 30, 10, "+")

    with pytest.raises(PoolMisuseError):
        pool.release(a)


def test_get_returns_live_record():
    pool = AllelePool()
    a = pool.acquire(AlleleType.SNP, "A", 1, "S1", 30, 10, "+")
    assert pool.get(a.handle) is a
    with pytest.raises(PoolMisuseError):
        pool.get(7)


def test_value_equality_ignores_sample_and_quality():
    a = Allele(AlleleType.SNP, "A", 1, sample="S1", quality=30)
    b = Allele(AlleleType.SNP, "A", 1, sample="S2", quality=5)
    c = Allele(AlleleType.REFERENCE, "A", 1)

    assert a == b
    assert a != c
    with pytest.raises(TypeError):
        hash(a)


def test_alphabet_alleles_labels():
    alleles = alphabet_alleles(["R", "A", "T"])

    assert [a.label for a in alleles] == ["R", "A", "T"]
    assert alleles[0] == genotype_allele(AlleleType.REFERENCE)
    assert alleles[1].kind == AlleleType.SNP


def test_release_all_returns_every_slot_before_raising():
    pool = AllelePool(debug=True)
    alleles = [pool.acquire(AlleleType.SNP, "A", 1, "S1", 30, 10, "+") for _ in range(4)]
    pool.release(alleles[1])

    with pytest.raises(PoolMisuseError):
        pool.release_all(alleles)

    assert pool.live == 0
    assert pool.free == 4
