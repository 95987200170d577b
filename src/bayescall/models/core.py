"""
Core data models for bayescall.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from ..errors import ConfigurationError, EmptyAlphabetError, InvalidPloidyError

REFERENCE_SYMBOL = "R"
NUCLEOTIDES = ("A", "C", "G", "T")
DEFAULT_ALPHABET = ["R", "A", "T", "G", "C"]


class AlleleType(str, Enum):
    """Kind of an observed or hypothesized allele."""
    REFERENCE = "REFERENCE"
    SNP = "SNP"
    INDEL = "INDEL"


class PriorKind(str, Enum):
    UNIFORM = "uniform"
    VARIANT_COUNT = "variant-count"


class OutputFormat(str, Enum):
    JSON = "json"
    TSV = "tsv"


class GenomicInterval(BaseModel):
    """
    Represents a 0-based, half-open genomic interval [start, end).

    This is the canonical internal representation for all coordinates.
    An interval without an end runs to the end of its contig.
    """
    chrom: str
    start: int = Field(default=0, ge=0, description="0-based start position (inclusive)")
    end: int | None = Field(default=None, ge=0, description="0-based end position (exclusive)")

    @model_validator(mode="after")
    def validate_interval(self) -> "GenomicInterval":
        if self.end is not None and self.end < self.start:
            raise ValueError(f"End position ({self.end}) must be >= start position ({self.start})")
        return self

    def __str__(self) -> str:
        end = "" if self.end is None else str(self.end)
        return f"{self.chrom}:{self.start + 1}-{end}"


class ModelConfig(BaseModel):
    """
    Parameters of the genotype model.

    These are fixed for a run: the genotype set is derived from ``alphabet``
    and ``ploidy`` once and shared by every position.
    """
    ploidy: int = 2
    alphabet: list[str] = Field(default_factory=lambda: list(DEFAULT_ALPHABET))

    # Dominant-combination pruning
    top_n: int = Field(default=3, ge=1)
    max_exact_combinations: int = Field(default=256, ge=0)

    # Priors
    prior: PriorKind = PriorKind.VARIANT_COUNT
    theta: float = Field(default=0.001, gt=0.0, lt=1.0)

    # Reporting
    min_variant_probability: float = Field(default=0.0, ge=0.0, le=1.0)
    report_top: int | None = Field(default=None, ge=1)

    @field_validator("ploidy")
    @classmethod
    def validate_ploidy(cls, v: int) -> int:
        if v < 1:
            raise InvalidPloidyError(f"Ploidy must be at least 1, got {v}")
        return v

    @field_validator("alphabet")
    @classmethod
    def validate_alphabet(cls, v: list[str]) -> list[str]:
        symbols = [s.strip().upper() for s in v if s.strip()]
        if not symbols:
            raise EmptyAlphabetError("Allele alphabet must contain at least one symbol")
        for symbol in symbols:
            if symbol != REFERENCE_SYMBOL and symbol not in NUCLEOTIDES:
                raise ConfigurationError(
                    f"Unknown allele symbol '{symbol}' (expected {REFERENCE_SYMBOL} or one of "
                    f"{', '.join(NUCLEOTIDES)})"
                )
        if len(set(symbols)) != len(symbols):
            raise ConfigurationError(f"Duplicate symbols in allele alphabet: {symbols}")
        return symbols


class BayesConfig(BaseModel):
    """
    Global configuration for a bayescall run.
    """
    # Input
    bam_files: dict[str, Path]  # sample_name -> bam_path
    reference_fasta: Path
    targets: Path | None = None
    regions: list[str] = Field(default_factory=list)

    # Output
    output: Path | None = None  # None writes to stdout
    output_format: OutputFormat = OutputFormat.JSON

    # Filters
    min_mapping_quality: int = Field(default=20, ge=0)
    min_base_quality: int = Field(default=0, ge=0)
    filter_duplicates: bool = True
    filter_secondary: bool = True
    filter_supplementary: bool = False
    filter_qc_failed: bool = True
    mask_indel_reads: bool = True
    max_depth: int = Field(default=100000, ge=1)

    # Performance
    threads: int = Field(default=1, ge=1)
    debug_pool: bool = False

    model: ModelConfig = Field(default_factory=ModelConfig)

    @field_validator("reference_fasta")
    @classmethod
    def validate_file_exists(cls, v: Path) -> Path:
        if not v.exists():
            raise ValueError(f"File not found: {v}")
        return v

    @field_validator("targets")
    @classmethod
    def validate_targets(cls, v: Path | None) -> Path | None:
        if v is not None and not v.exists():
            raise ValueError(f"Targets file not found: {v}")
        return v

    @model_validator(mode="after")
    def validate_bams(self) -> "BayesConfig":
        if not self.bam_files:
            raise ValueError("At least one BAM file is required")
        for name, path in self.bam_files.items():
            if not path.exists():
                raise ValueError(f"BAM file for sample '{name}' not found: {path}")
        return self


class SampleResult(BaseModel):
    """Posterior genotype distribution for one sample at one position."""
    coverage: int = 0
    posteriors: dict[str, float]
    scores: dict[str, float]
    variant_probability: float
    informative: bool = True

    def best(self) -> tuple[str, float]:
        label = max(self.posteriors, key=self.posteriors.__getitem__)
        return label, self.posteriors[label]


class PositionResult(BaseModel):
    """
    Final output unit for one covered position.

    ``position`` is 1-based.
    """
    sequence: str
    position: int = Field(ge=1)
    reference: str
    variant_probability: float
    combinations: int = 0
    pruned: bool = False
    degenerate: bool = False
    samples: dict[str, SampleResult]
