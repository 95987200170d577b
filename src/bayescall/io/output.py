"""
Output Writers: Formatting per-position genotype posteriors.

JSON lines carry one object per position with the Phred confidence of every
genotype per sample. TSV carries one row per (position, sample) with the
best genotype.
"""

import csv
import json
import sys
from pathlib import Path
from typing import TextIO

from ..models.core import OutputFormat, PositionResult


class OutputWriter:
    """Abstract base class for output writers."""

    def __init__(self, path: Path | None = None, report_top: int | None = None):
        self.path = path
        self.report_top = report_top
        self._owns_file = path is not None
        self.file: TextIO = open(path, "w") if path is not None else sys.stdout
        self.records = 0

    def write(self, result: PositionResult):
        raise NotImplementedError

    def close(self):
        if self._owns_file:
            self.file.close()
        else:
            self.file.flush()

    def __enter__(self) -> "OutputWriter":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def ranked(self, posteriors: dict[str, float]) -> list[str]:
        """Genotype labels by decreasing posterior, limited to ``report_top``."""
        labels = sorted(posteriors, key=lambda label: -posteriors[label])
        if self.report_top is not None:
            labels = labels[: self.report_top]
        return labels


class JsonWriter(OutputWriter):
    """Writes one JSON object per position."""

    def write(self, result: PositionResult):
        samples = {}
        for name, sample in result.samples.items():
            labels = self.ranked(sample.posteriors)
            samples[name] = {
                "coverage": sample.coverage,
                "variant_probability": sample.variant_probability,
                "genotypes": {label: round(sample.scores[label], 4) for label in labels},
            }

        record = {
            "sequence": result.sequence,
            "position": result.position,
            "reference": result.reference,
            "variant_probability": result.variant_probability,
            "samples": samples,
        }
        if result.pruned:
            record["pruned"] = True
        if result.degenerate:
            record["degenerate"] = True

        self.file.write(json.dumps(record) + "\n")
        self.records += 1


class TsvWriter(OutputWriter):
    """Writes a table with one row per position and sample."""

    fieldnames = [
        "sequence",
        "position",
        "reference",
        "sample",
        "coverage",
        "genotype",
        "posterior",
        "score",
        "sample_variant_probability",
        "variant_probability",
    ]

    def __init__(self, path: Path | None = None, report_top: int | None = None):
        super().__init__(path, report_top)
        self.writer = csv.DictWriter(
            self.file, fieldnames=self.fieldnames, delimiter="\t", lineterminator="\n"
        )
        self._headers_written = False

    def write(self, result: PositionResult):
        if not self._headers_written:
            self.writer.writeheader()
            self._headers_written = True

        for name, sample in result.samples.items():
            genotype, posterior = sample.best()
            self.writer.writerow(
                {
                    "sequence": result.sequence,
                    "position": result.position,
                    "reference": result.reference,
                    "sample": name,
                    "coverage": sample.coverage,
                    "genotype": genotype,
                    "posterior": f"{posterior:.6g}",
                    "score": f"{sample.scores[genotype]:.2f}",
                    "sample_variant_probability": f"{sample.variant_probability:.6g}",
                    "variant_probability": f"{result.variant_probability:.6g}",
                }
            )
        self.records += 1


def open_writer(
    output_format: OutputFormat, path: Path | None = None, report_top: int | None = None
) -> OutputWriter:
    if output_format == OutputFormat.TSV:
        return TsvWriter(path, report_top)
    return JsonWriter(path, report_top)
