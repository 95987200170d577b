"""
Genotype hypotheses.

A genotype is a multiset of ``ploidy`` hypothesis alleles drawn from a fixed
alphabet. The full genotype set is generated once per run with a
choose-with-repetition generator and is read-only afterwards.
"""

from collections.abc import Sequence
from math import comb
from typing import TypeVar

from ..errors import ConfigurationError, EmptyAlphabetError, InvalidPloidyError
from ..models.core import AlleleType
from .allele import Allele

T = TypeVar("T")


class Genotype:
    """
    Multiset of hypothesis alleles in canonical (alphabet index) order.

    Equality and hashing use the sorted multiset of allele keys, so two
    genotypes built from the same alleles in a different order are equal.
    """

    __slots__ = ("alleles", "indices", "_key")

    def __init__(self, alleles: Sequence[Allele], indices: Sequence[int] | None = None):
        if indices is None:
            # Rank of each allele among the distinct keys
            ranked = sorted({a.key() for a in alleles}, key=_sort_key)
            indices = [ranked.index(a.key()) for a in alleles]
        order = sorted(range(len(alleles)), key=lambda i: indices[i])
        self.alleles = tuple(alleles[i] for i in order)
        self.indices = tuple(indices[i] for i in order)
        self._key = tuple(sorted((a.key() for a in alleles), key=_sort_key))

    @property
    def ploidy(self) -> int:
        return len(self.alleles)

    @property
    def label(self) -> str:
        return "/".join(a.label for a in self.alleles)

    @property
    def is_reference(self) -> bool:
        return all(a.kind == AlleleType.REFERENCE for a in self.alleles)

    @property
    def is_homozygous(self) -> bool:
        return len(set(self._key)) == 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Genotype):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return f"Genotype({self.label})"

    def __str__(self) -> str:
        return self.label


def _sort_key(key: tuple) -> tuple:
    kind, sequence, length = key
    return (kind.value, sequence or "", length)


def multichoose(k: int, items: Sequence[T]) -> list[list[T]]:
    """
    All multisets of size ``k`` drawn from ``items``.

    Each multiset is listed with non-decreasing item indices and the result is
    ordered lexicographically by those indices.
    """
    n = len(items)
    if k < 1 or n == 0:
        return []

    results = []
    indices = [0] * k
    while True:
        results.append([items[i] for i in indices])
        # Rightmost index that can still advance
        j = k - 1
        while j >= 0 and indices[j] == n - 1:
            j -= 1
        if j < 0:
            break
        value = indices[j] + 1
        for m in range(j, k):
            indices[m] = value
    return results


def generate_genotypes(alphabet: Sequence[Allele], ploidy: int) -> tuple[Genotype, ...]:
    """
    Every distinct genotype of ``ploidy`` alleles over ``alphabet``.

    Yields C(n + k - 1, k) genotypes in lexicographic order of alphabet index.
    """
    if ploidy < 1:
        raise InvalidPloidyError(f"Ploidy must be at least 1, got {ploidy}")
    if not alphabet:
        raise EmptyAlphabetError("Cannot build genotypes from an empty allele alphabet")

    keys = [a.key() for a in alphabet]
    if len(set(keys)) != len(keys):
        raise ConfigurationError("Allele alphabet contains duplicate alleles")

    genotypes = tuple(
        Genotype([alphabet[i] for i in combo], combo)
        for combo in multichoose(ploidy, range(len(alphabet)))
    )
    assert len(genotypes) == comb(len(alphabet) + ploidy - 1, ploidy)
    return genotypes
