"""
I/O module for bayescall.

Provides the BAM observation feed, reference and target readers, and result
writers (JSON lines, TSV).
"""

from .input import BamObservationFeed, BedReader, ReferenceSequence
from .output import JsonWriter, OutputWriter, TsvWriter, open_writer

__all__ = [
    "BamObservationFeed",
    "BedReader",
    "JsonWriter",
    "OutputWriter",
    "ReferenceSequence",
    "TsvWriter",
    "open_writer",
]
