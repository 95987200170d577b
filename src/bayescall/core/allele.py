"""
Allele records and the recycling arena that owns them.

One Allele is created for every (read, position) pair, so records are
recycled instead of reallocated. The arena stores records in a growable
list; the handle of a record is its slot index and released slots are kept
on a stack of free indices. The arena never shrinks.

An arena is not safe for concurrent mutation. Parallel workers each own one.
"""

import logging

from ..errors import PoolMisuseError
from ..models.core import REFERENCE_SYMBOL, AlleleType

logger = logging.getLogger(__name__)

_POISON_QUALITY = -1


class Allele:
    """
    A single observed or hypothesized base call.

    Equality compares kind, sequence and length only, which is what grouping
    and likelihood counting rely on. Observed alleles are mutable arena
    records and are therefore unhashable; use ``key()`` for lookups.
    """

    __slots__ = (
        "kind",
        "sequence",
        "length",
        "position",
        "sample",
        "quality",
        "strand",
        "handle",
        "released",
    )

    def __init__(
        self,
        kind: AlleleType,
        sequence: str,
        length: int = 1,
        sample: str = "",
        quality: int = 0,
        position: int = 0,
        strand: str = "+",
        handle: int = -1,
    ):
        self.kind = kind
        self.sequence = sequence
        self.length = length
        self.position = position
        self.sample = sample
        self.quality = quality
        self.strand = strand
        self.handle = handle
        self.released = False

    def key(self) -> tuple:
        return (self.kind, self.sequence, self.length)

    @property
    def label(self) -> str:
        if self.kind == AlleleType.REFERENCE and not self.sequence:
            return REFERENCE_SYMBOL
        return self.sequence

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Allele):
            return NotImplemented
        return self.key() == other.key()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self.released:
            return f"Allele(<released slot {self.handle}>)"
        return (
            f"Allele({self.kind.value}, {self.sequence!r}, sample={self.sample!r}, "
            f"q={self.quality}, pos={self.position}{self.strand})"
        )


def genotype_allele(kind: AlleleType, sequence: str = "", length: int = 1) -> Allele:
    """
    Build a hypothesis allele for the genotype alphabet.

    The Reference hypothesis carries no sequence; it stands for whatever the
    reference base is at the position being evaluated.
    """
    return Allele(kind, sequence, length)


def alphabet_alleles(symbols: list[str]) -> list[Allele]:
    """Translate alphabet symbols (``R`` or a base) into hypothesis alleles."""
    alleles = []
    for symbol in symbols:
        if symbol == REFERENCE_SYMBOL:
            alleles.append(genotype_allele(AlleleType.REFERENCE))
        else:
            alleles.append(genotype_allele(AlleleType.SNP, symbol, len(symbol)))
    return alleles


class AllelePool:
    """
    Index-keyed arena of Allele records.

    With ``debug=True`` released records are poisoned and every later use
    through the pool raises PoolMisuseError. Without it a double release is
    logged and ignored, so a slot can never sit on the free stack twice.
    """

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._slots: list[Allele] = []
        self._free: list[int] = []

    def __len__(self) -> int:
        return len(self._slots)

    @property
    def free(self) -> int:
        return len(self._free)

    @property
    def live(self) -> int:
        return len(self._slots) - len(self._free)

    def acquire(
        self,
        kind: AlleleType,
        sequence: str,
        length: int,
        sample: str,
        quality: int,
        position: int,
        strand: str,
    ) -> Allele:
        if self._free:
            handle = self._free.pop()
            allele = self._slots[handle]
            allele.kind = kind
            allele.sequence = sequence
            allele.length = length
            allele.sample = sample
            allele.quality = quality
            allele.position = position
            allele.strand = strand
            allele.released = False
            return allele

        handle = len(self._slots)
        allele = Allele(kind, sequence, length, sample, quality, position, strand, handle)
        self._slots.append(allele)
        return allele

    def release(self, allele: Allele) -> None:
        if not self._owns(allele):
            raise PoolMisuseError(f"Allele slot {allele.handle} does not belong to this pool")

        if allele.released:
            if self.debug:
                raise PoolMisuseError(f"Allele slot {allele.handle} released twice")
            logger.warning("Ignoring double release of allele slot %d", allele.handle)
            return

        allele.released = True
        if self.debug:
            allele.kind = None  # type: ignore[assignment]
            allele.sequence = None  # type: ignore[assignment]
            allele.sample = None  # type: ignore[assignment]
            allele.quality = _POISON_QUALITY
        self._free.append(allele.handle)

    def release_all(self, alleles) -> None:
        """Release every allele, raising the first misuse only after the rest are back."""
        error: PoolMisuseError | None = None
        for allele in alleles:
            try:
                self.release(allele)
            except PoolMisuseError as e:
                error = error or e
        if error is not None:
            raise error

    def get(self, handle: int) -> Allele:
        """Return the live record behind a handle."""
        if handle < 0 or handle >= len(self._slots):
            raise PoolMisuseError(f"Unknown allele handle {handle}")
        allele = self._slots[handle]
        self.check(allele)
        return allele

    @staticmethod
    def check(allele: Allele) -> Allele:
        if allele.released:
            raise PoolMisuseError(f"Use of released allele slot {allele.handle}")
        return allele

    def _owns(self, allele: Allele) -> bool:
        return 0 <= allele.handle < len(self._slots) and self._slots[allele.handle] is allele
