"""Pytest configuration and fixtures."""

import sys
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pysam
import pytest

# Add src directory to path so tests use local code, not installed package
project_root = Path(__file__).parent.parent
src_dir = project_root / "src"
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from bayescall.core.allele import AllelePool  # noqa: E402
from bayescall.models.core import AlleleType  # noqa: E402

# chr1 reference used by the synthetic BAM fixtures; 0-based position 10 is 'T'
REFERENCE = "ACGTACGTACTGCATGCATGCAAACCCGGGTTTACGTACGTACGTACGTACGTACGTACG"
CONTIG = "chr1"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_fasta(temp_dir: Path) -> Path:
    """Indexed single-contig reference."""
    fasta = temp_dir / "reference.fa"
    with open(fasta, "w") as f:
        f.write(f">{CONTIG}\n{REFERENCE}\n")
    pysam.faidx(str(fasta))
    return fasta


def make_read(
    name: str,
    start: int,
    length: int = 20,
    substitutions: dict[int, str] | None = None,
    quality: int = 30,
    flag: int = 0,
    mapq: int = 60,
    cigar: tuple | None = None,
    read_group: str | None = None,
) -> pysam.AlignedSegment:
    """
    Read matching the reference from ``start``, with optional base
    substitutions keyed by 0-based reference position.
    """
    bases = list(REFERENCE[start : start + length])
    for pos, base in (substitutions or {}).items():
        bases[pos - start] = base

    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = "".join(bases)
    a.flag = flag
    a.reference_id = 0
    a.reference_start = start
    a.mapping_quality = mapq
    a.cigartuples = cigar or ((0, len(bases)),)
    a.query_qualities = [quality] * len(bases)
    if read_group:
        a.set_tag("RG", read_group)
    return a


@pytest.fixture
def bam_factory(temp_dir: Path) -> Callable[..., Path]:
    """Write, sort and index a BAM from AlignedSegments."""

    def _make(name: str, reads: list, read_groups: dict[str, str] | None = None) -> Path:
        header: dict = {
            "HD": {"VN": "1.6", "SO": "unsorted"},
            "SQ": [{"SN": CONTIG, "LN": len(REFERENCE)}],
        }
        if read_groups:
            header["RG"] = [{"ID": rg, "SM": sm} for rg, sm in read_groups.items()]

        unsorted_bam = temp_dir / f"{name}.unsorted.bam"
        with pysam.AlignmentFile(str(unsorted_bam), "wb", header=header) as out:
            for read in reads:
                out.write(read)

        bam = temp_dir / f"{name}.bam"
        pysam.sort("-o", str(bam), str(unsorted_bam))
        pysam.index(str(bam))
        return bam

    return _make


@pytest.fixture
def sample_bam(bam_factory) -> Path:
    """
    Sample 'S1': 10 reads over chr1:1-30, all carrying A at position 10
    (reference T), plus one duplicate and one low-MAPQ read carrying G.
    """
    reads = [make_read(f"alt{i}", 0, 30, {10: "A"}) for i in range(10)]
    reads.append(make_read("dup", 0, 30, {10: "G"}, flag=1024))
    reads.append(make_read("lowmq", 0, 30, {10: "G"}, mapq=5))
    return bam_factory("S1", reads)


@pytest.fixture
def pool() -> AllelePool:
    return AllelePool(debug=True)


@pytest.fixture
def observe(pool: AllelePool) -> Callable[..., list]:
    """Acquire ``n`` observed alleles of one base for a sample."""

    def _observe(
        sample: str, base: str, n: int, quality: int = 30, reference: str = "T", position: int = 10
    ) -> list:
        kind = AlleleType.REFERENCE if base == reference else AlleleType.SNP
        return [
            pool.acquire(kind, base, 1, sample, quality, position, "+" if i % 2 else "-")
            for i in range(n)
        ]

    return _observe
