"""
Input Adapters: target intervals, reference sequence and BAM pileups.

The BamObservationFeed turns pileup columns from one or more BAM files into
per-position allele lists, acquiring every Allele from the caller's arena.
"""

import csv
import heapq
import itertools
import logging
from collections.abc import Iterator, Mapping, Sequence
from operator import itemgetter
from pathlib import Path

import pysam

from ..core.allele import Allele, AllelePool
from ..core.grouping import PositionObservations
from ..core.kernel import CoordinateKernel
from ..models.core import AlleleType, BayesConfig, GenomicInterval

logger = logging.getLogger(__name__)

BAM_CINS = 1
BAM_CDEL = 2


class BedReader:
    """Reads target intervals from a BED file."""

    def __init__(self, path: Path):
        self.path = path

    def __iter__(self) -> Iterator[GenomicInterval]:
        with open(self.path) as f:
            reader = csv.reader(f, delimiter="\t")
            for lineno, row in enumerate(reader, start=1):
                if not row or not row[0].strip():
                    continue
                if row[0].startswith(("#", "track", "browser")):
                    continue
                if len(row) < 3:
                    raise ValueError(f"{self.path}:{lineno}: expected at least 3 columns")
                try:
                    start, end = int(row[1]), int(row[2])
                except ValueError as e:
                    raise ValueError(f"{self.path}:{lineno}: invalid coordinates") from e
                yield CoordinateKernel.bed_to_internal(row[0].strip(), start, end)


class ReferenceSequence:
    """
    Reference lookups backed by an indexed FASTA.

    Contig names are resolved with or without a ``chr`` prefix.
    """

    def __init__(self, fasta_path: Path):
        self.fasta = pysam.FastaFile(str(fasta_path))

    @property
    def references(self) -> tuple[str, ...]:
        return tuple(self.fasta.references)

    def resolve(self, chrom: str) -> str | None:
        return CoordinateKernel.resolve_contig(chrom, self.fasta.references)

    def fetch(self, chrom: str, start: int, end: int) -> str:
        """Upper-case sequence of [start, end); empty if the contig is unknown."""
        contig = self.resolve(chrom)
        if contig is None:
            return ""
        return self.fasta.fetch(contig, start, end).upper()

    def base(self, chrom: str, pos: int) -> str:
        return self.fetch(chrom, pos, pos + 1) or "N"

    def close(self):
        self.fasta.close()

    def __enter__(self) -> "ReferenceSequence":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class BamObservationFeed:
    """
    Pull-based feed of per-position observations across BAM files.

    Regions are sorted and overlapping ones merged, so every position is
    produced once, in order within its contig. Columns whose reads are all
    filtered still come through with an empty allele list.

    Args:
        bam_files: sample_name -> BAM path. The name is used for reads
            without a read group sample (``SM``).
        reference: Reference sequence used to classify bases.
        regions: Intervals to visit.
        pool: Arena every Allele is acquired from.
    """

    def __init__(
        self,
        bam_files: Mapping[str, Path],
        reference: ReferenceSequence,
        regions: Sequence[GenomicInterval],
        pool: AllelePool,
        min_mapping_quality: int = 20,
        min_base_quality: int = 0,
        filter_duplicates: bool = True,
        filter_secondary: bool = True,
        filter_supplementary: bool = False,
        filter_qc_failed: bool = True,
        mask_indel_reads: bool = True,
        max_depth: int = 100000,
    ):
        self.reference = reference
        self.regions = CoordinateKernel.merge_intervals(regions)
        self.pool = pool
        self.min_mapping_quality = min_mapping_quality
        self.min_base_quality = min_base_quality
        self.filter_duplicates = filter_duplicates
        self.filter_secondary = filter_secondary
        self.filter_supplementary = filter_supplementary
        self.filter_qc_failed = filter_qc_failed
        self.mask_indel_reads = mask_indel_reads
        self.max_depth = max_depth

        self._bams: dict[str, pysam.AlignmentFile] = {}
        self._read_groups: dict[str, dict[str, str]] = {}
        for name, path in bam_files.items():
            bam = pysam.AlignmentFile(str(path), "rb")
            self._bams[name] = bam
            self._read_groups[name] = {
                rg["ID"]: rg["SM"] for rg in bam.header.to_dict().get("RG", []) if "SM" in rg
            }
        self._iterator: Iterator[PositionObservations] | None = None

    @classmethod
    def from_config(
        cls,
        config: BayesConfig,
        reference: ReferenceSequence,
        regions: Sequence[GenomicInterval],
        pool: AllelePool,
    ) -> "BamObservationFeed":
        return cls(
            config.bam_files,
            reference,
            regions,
            pool,
            min_mapping_quality=config.min_mapping_quality,
            min_base_quality=config.min_base_quality,
            filter_duplicates=config.filter_duplicates,
            filter_secondary=config.filter_secondary,
            filter_supplementary=config.filter_supplementary,
            filter_qc_failed=config.filter_qc_failed,
            mask_indel_reads=config.mask_indel_reads,
            max_depth=config.max_depth,
        )

    @property
    def samples(self) -> list[str]:
        """Every sample the BAM files can report, in input order."""
        names: list[str] = []
        for name in self._bams:
            read_group_samples = list(dict.fromkeys(self._read_groups[name].values())) or [name]
            names.extend(s for s in read_group_samples if s not in names)
        return names

    def next_position(self) -> PositionObservations | None:
        """Observations at the next covered position, or None when exhausted."""
        if self._iterator is None:
            self._iterator = iter(self)
        return next(self._iterator, None)

    def __iter__(self) -> Iterator[PositionObservations]:
        for region in self.regions:
            yield from self._region(region)

    def _region(self, region: GenomicInterval) -> Iterator[PositionObservations]:
        streams = []
        sequence = None
        region_end = region.start
        for name, bam in self._bams.items():
            contig = CoordinateKernel.resolve_contig(region.chrom, bam.references)
            if contig is None:
                logger.warning("Contig %s not found in BAM for %s; skipping", region.chrom, name)
                continue
            sequence = sequence or contig
            end = region.end if region.end is not None else bam.get_reference_length(contig)
            region_end = max(region_end, end)
            streams.append((name, bam, contig, end))

        if not streams or sequence is None:
            return

        reference = self.reference.fetch(region.chrom, region.start, region_end)
        columns = [
            self._pileup(name, bam, contig, region.start, end, reference)
            for name, bam, contig, end in streams
        ]

        merged = heapq.merge(*columns, key=itemgetter(0))
        for pos, group in itertools.groupby(merged, key=itemgetter(0)):
            alleles = [allele for _, column in group for allele in column]
            offset = pos - region.start
            ref_base = reference[offset] if 0 <= offset < len(reference) else "N"
            yield PositionObservations(sequence, pos, ref_base, alleles)

    def _pileup(
        self,
        name: str,
        bam: pysam.AlignmentFile,
        contig: str,
        start: int,
        end: int,
        reference: str,
    ) -> Iterator[tuple[int, list[Allele]]]:
        for column in bam.pileup(
            contig,
            start,
            end,
            truncate=True,
            stepper="nofilter",
            ignore_overlaps=False,
            ignore_orphans=False,
            min_base_quality=0,
            max_depth=self.max_depth,
        ):
            pos = column.reference_pos
            offset = pos - start
            ref_base = reference[offset] if 0 <= offset < len(reference) else "N"
            alleles = []
            for read in column.pileups:
                aln = read.alignment
                if read.is_refskip or self._should_filter_alignment(aln):
                    continue

                sample = self._sample_of(name, aln)
                strand = "-" if aln.is_reverse else "+"

                if read.is_del:
                    alleles.append(
                        self.pool.acquire(AlleleType.INDEL, "", 1, sample, 0, pos, strand)
                    )
                    continue

                qualities = aln.query_qualities
                if qualities is None:
                    continue
                base = aln.query_sequence[read.query_position].upper()
                quality = qualities[read.query_position]
                if base == "N" or quality < self.min_base_quality:
                    continue

                kind = AlleleType.REFERENCE if base == ref_base else AlleleType.SNP
                alleles.append(self.pool.acquire(kind, base, 1, sample, quality, pos, strand))
            yield pos, alleles

    def _sample_of(self, name: str, aln: pysam.AlignedSegment) -> str:
        if aln.has_tag("RG"):
            return self._read_groups[name].get(aln.get_tag("RG"), name)
        return name

    def _should_filter_alignment(self, aln: pysam.AlignedSegment) -> bool:
        """True if the read is excluded by the configured filters."""
        if self.filter_duplicates and aln.is_duplicate:
            return True
        if self.filter_qc_failed and aln.is_qcfail:
            return True
        if self.filter_secondary and aln.is_secondary:
            return True
        if self.filter_supplementary and aln.is_supplementary:
            return True
        if aln.mapping_quality < self.min_mapping_quality:
            return True
        if self.mask_indel_reads and self._has_indel(aln):
            return True
        return False

    @staticmethod
    def _has_indel(aln: pysam.AlignedSegment) -> bool:
        if aln.cigartuples is None:
            return False
        return any(op in (BAM_CINS, BAM_CDEL) for op, _length in aln.cigartuples)

    def close(self):
        for bam in self._bams.values():
            bam.close()

    def __enter__(self) -> "BamObservationFeed":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
