"""
Pipeline Orchestrator: Manages the execution flow of bayescall.

This module handles:
1. Resolving target regions (BED file, region strings or whole genome).
2. Streaming pileup observations from the BAM files.
3. Running the Bayesian caller position by position.
4. Writing PositionResults as JSON lines or TSV.
"""

import logging
import signal
import threading
from functools import partial

import pysam

from .caller import Caller, CallerStats
from .core.allele import AllelePool
from .core.kernel import CoordinateKernel
from .io.input import BamObservationFeed, BedReader, ReferenceSequence
from .io.output import OutputWriter, open_writer
from .models.core import BayesConfig, GenomicInterval, PositionResult
from .parallel import ParallelProcessor
from .utils.logging import console, log_call, timed

logger = logging.getLogger(__name__)

STATUS_INTERVAL = 1000


@log_call()
def call_region(
    config: BayesConfig, region: GenomicInterval
) -> tuple[list[PositionResult], CallerStats]:
    """
    Call one region with its own arena, file handles and caller.

    Used as the unit of work for parallel runs.
    """
    pool = AllelePool(debug=config.debug_pool)
    with ReferenceSequence(config.reference_fasta) as reference:
        with BamObservationFeed.from_config(config, reference, [region], pool) as feed:
            caller = Caller(config.model, pool, feed.samples)
            results = list(caller.run(feed))
    return results, caller.stats


class Pipeline:
    def __init__(self, config: BayesConfig):
        self.config = config
        self.console = console
        self.stats = CallerStats()
        self.interrupted = False
        self._caller: Caller | None = None

    def run(self) -> CallerStats:
        """Execute the pipeline."""
        self.console.print("[bold blue]Starting bayescall pipeline[/bold blue]")

        regions = self._resolve_regions()
        if not regions:
            self.console.print("[bold red]No target regions found. Exiting.[/bold red]")
            return self.stats
        self.console.print(f"Target regions: [bold]{len(regions)}[/bold]")

        with open_writer(
            self.config.output_format, self.config.output, self.config.model.report_top
        ) as writer:
            if self.config.threads > 1 and len(regions) > 1:
                self._run_parallel(regions, writer)
            else:
                self._run_sequential(regions, writer)

        self._report()
        return self.stats

    def cancel(self) -> None:
        """Stop at the next position boundary."""
        self.interrupted = True
        if self._caller is not None:
            self._caller.cancel()

    def _resolve_regions(self) -> list[GenomicInterval]:
        regions: list[GenomicInterval] = []
        if self.config.targets is not None:
            regions.extend(BedReader(self.config.targets))
        regions.extend(CoordinateKernel.region_to_internal(r) for r in self.config.regions)

        if not regions:
            first_bam = next(iter(self.config.bam_files.values()))
            with pysam.AlignmentFile(str(first_bam), "rb") as bam:
                regions = [
                    GenomicInterval(chrom=name, start=0, end=length)
                    for name, length in zip(bam.references, bam.lengths)
                ]
        return CoordinateKernel.merge_intervals(regions)

    def _run_sequential(self, regions: list[GenomicInterval], writer: OutputWriter) -> None:
        pool = AllelePool(debug=self.config.debug_pool)
        previous = None
        if threading.current_thread() is threading.main_thread():
            previous = signal.signal(signal.SIGINT, self._handle_interrupt)

        try:
            with ReferenceSequence(self.config.reference_fasta) as reference:
                with BamObservationFeed.from_config(
                    self.config, reference, regions, pool
                ) as feed:
                    self._caller = Caller(self.config.model, pool, feed.samples)
                    if self.interrupted:
                        self._caller.cancel()
                    self.console.print(f"Samples: [bold]{', '.join(feed.samples)}[/bold]")

                    with timed("Calling all regions", logger):
                        with self.console.status("[bold green]Calling genotypes...") as status:
                            for result in self._caller.run(feed):
                                writer.write(result)
                                if writer.records % STATUS_INTERVAL == 0:
                                    status.update(
                                        f"[bold green]Calling genotypes... "
                                        f"{result.sequence}:{result.position}"
                                    )
                    self.stats.merge(self._caller.stats)
                    logger.debug("Allele arena: %d slots, %d free", len(pool), pool.free)
        finally:
            if previous is not None:
                signal.signal(signal.SIGINT, previous)

    def _run_parallel(self, regions: list[GenomicInterval], writer: OutputWriter) -> None:
        processor = ParallelProcessor(n_jobs=self.config.threads)
        outcomes = processor.map(
            partial(call_region, self.config), regions, description="Calling regions"
        )
        for results, stats in outcomes:
            for result in sorted(results, key=lambda r: r.position):
                writer.write(result)
            self.stats.merge(stats)

    def _handle_interrupt(self, signum, frame) -> None:
        if self.interrupted:
            raise KeyboardInterrupt
        self.console.print("[yellow]Interrupted; finishing the current position...[/yellow]")
        self.cancel()

    def _report(self) -> None:
        s = self.stats
        self.console.print(
            f"Positions: [bold]{s.positions}[/bold], reported: [bold]{s.reported}[/bold], "
            f"no coverage: {s.empty}, below threshold: {s.below_threshold}"
        )
        if s.pruned:
            self.console.print(f"Pruned combination space at {s.pruned} positions")
        if s.degenerate:
            self.console.print(
                f"[yellow]Degenerate normalization at {s.degenerate} positions[/yellow]"
            )
        if self.interrupted:
            self.console.print("[yellow]Run interrupted before completion.[/yellow]")
        else:
            self.console.print("[bold green]Pipeline completed successfully.[/bold green]")
