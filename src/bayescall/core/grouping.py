"""Partitioning of a position's observations."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..errors import PoolMisuseError
from ..models.core import AlleleType
from .allele import Allele


def group_alleles_by_sample(alleles: Iterable[Allele]) -> dict[str, list[Allele]]:
    """
    Split alleles by sample.

    Groups appear in first-seen order and keep the relative order of their
    alleles. Every allele lands in exactly one group.
    """
    groups: dict[str, list[Allele]] = {}
    for allele in alleles:
        if allele.released:
            raise PoolMisuseError(f"Use of released allele slot {allele.handle}")
        groups.setdefault(allele.sample, []).append(allele)
    return groups


def split_indels(alleles: Iterable[Allele]) -> tuple[list[Allele], list[Allele]]:
    """Separate indel observations, which the likelihood model does not handle."""
    usable: list[Allele] = []
    indels: list[Allele] = []
    for allele in alleles:
        (indels if allele.kind == AlleleType.INDEL else usable).append(allele)
    return usable, indels


@dataclass
class PositionObservations:
    """All observations at one position, as pulled from an observation feed."""

    sequence: str
    position: int  # 0-based
    reference: str
    alleles: list[Allele] = field(default_factory=list)
