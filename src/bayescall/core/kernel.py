"""
Coordinate Kernel: The source of truth for genomic coordinate systems.

Handles conversion between:
- Region strings (``chrom:start-end``, 1-based inclusive)
- BED (0-based, half-open)
- Internal (0-based, half-open [start, end))
- Output (1-based positions)

Also reconciles contig names that differ only by a ``chr`` prefix between
BAM headers, FASTA indexes and target files.
"""

import re
from collections.abc import Iterable

from bayescall.models.core import GenomicInterval

_REGION_RE = re.compile(r"^(?P<chrom>[^:]+)(?::(?P<start>[\d,]+)(?:-(?P<end>[\d,]+)?)?)?$")


class CoordinateKernel:
    """
    Stateless utility for coordinate transformations and normalization.
    """

    @staticmethod
    def region_to_internal(region: str) -> GenomicInterval:
        """
        Parse a samtools-style region string.

        ``chr1`` covers the whole contig, ``chr1:100`` runs from base 100 to
        the contig end and ``chr1:100-200`` covers bases 100..200 inclusive.
        """
        match = _REGION_RE.match(region.strip())
        if not match:
            raise ValueError(f"Malformed region: {region!r}")

        chrom = match.group("chrom")
        start = match.group("start")
        end = match.group("end")

        if start is None:
            return GenomicInterval(chrom=chrom)

        start_1based = int(start.replace(",", ""))
        if start_1based < 1:
            raise ValueError(f"Region start must be >= 1: {region!r}")
        end_value = int(end.replace(",", "")) if end else None
        # 1-based inclusive [s, e] -> 0-based half-open [s - 1, e)
        return GenomicInterval(chrom=chrom, start=start_1based - 1, end=end_value)

    @staticmethod
    def bed_to_internal(chrom: str, start: int, end: int) -> GenomicInterval:
        """BED intervals are already 0-based half-open."""
        return GenomicInterval(chrom=chrom, start=start, end=end)

    @staticmethod
    def internal_to_output(pos: int) -> int:
        """0-based position -> 1-based output coordinate."""
        return pos + 1

    @staticmethod
    def normalize_chromosome(chrom: str) -> str:
        """
        Normalize chromosome name (remove 'chr' prefix).
        """
        if chrom.lower().startswith("chr"):
            return chrom[3:]
        return chrom

    @staticmethod
    def merge_intervals(intervals: Iterable[GenomicInterval]) -> list[GenomicInterval]:
        """
        Sort intervals by start and coalesce overlapping or adjacent ones.

        Contigs keep the order in which they first appear, and names that
        differ only by a ``chr`` prefix count as one contig. An interval
        without an end absorbs everything after its start.
        """
        by_contig: dict[str, list[GenomicInterval]] = {}
        for interval in intervals:
            key = CoordinateKernel.normalize_chromosome(interval.chrom)
            by_contig.setdefault(key, []).append(interval)

        merged: list[GenomicInterval] = []
        for group in by_contig.values():
            chrom = group[0].chrom
            group.sort(key=lambda i: i.start)
            start, end = group[0].start, group[0].end
            for interval in group[1:]:
                if end is None:
                    continue
                if interval.start <= end:
                    end = None if interval.end is None else max(end, interval.end)
                    continue
                merged.append(GenomicInterval(chrom=chrom, start=start, end=end))
                start, end = interval.start, interval.end
            merged.append(GenomicInterval(chrom=chrom, start=start, end=end))
        return merged

    @staticmethod
    def resolve_contig(chrom: str, available: Iterable[str]) -> str | None:
        """
        Find ``chrom`` among ``available`` contig names.

        Exact matches win; otherwise names are compared without a ``chr``
        prefix. Returns None if nothing matches.
        """
        names = list(available)
        if chrom in names:
            return chrom
        target = CoordinateKernel.normalize_chromosome(chrom)
        for name in names:
            if CoordinateKernel.normalize_chromosome(name) == target:
                return name
        return None
