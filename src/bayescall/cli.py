"""
CLI Entry Point: Exposes the bayescall functionality via command line.
"""

from pathlib import Path

import typer
from pydantic import ValidationError

from . import __version__
from .models.core import DEFAULT_ALPHABET, BayesConfig, ModelConfig, OutputFormat, PriorKind
from .pipeline import Pipeline
from .utils.logging import console, setup_logging

app = typer.Typer(help="bayescall: Bayesian multi-sample genotype caller")


@app.callback()
def main():
    """
    bayescall: Bayesian multi-sample genotype caller
    """
    pass


@app.command()
def version():
    """Print the installed version."""
    typer.echo(f"bayescall {__version__}")


def _parse_bam(value: str) -> tuple[str, Path]:
    """``path`` or ``sample:path``; bare paths are named after the file stem."""
    if ":" in value and not Path(value).exists():
        name, path = value.split(":", 1)
        return name, Path(path)
    path = Path(value)
    return path.stem, path


@app.command()
def run(
    bam_files: list[str] | None = typer.Option(
        None, "--bam", "-b", help="BAM file, optionally as SAMPLE:PATH. Can be repeated."
    ),
    bam_list: Path | None = typer.Option(
        None, "--bam-list", "-L", help="File containing list of BAM paths (one per line)"
    ),
    reference: Path = typer.Option(..., "--fasta", "-f", help="Path to indexed reference FASTA"),
    targets: Path | None = typer.Option(
        None, "--targets", "-T", help="BED file of target regions"
    ),
    regions: list[str] | None = typer.Option(
        None, "--region", "-r", help="Region chrom[:start[-end]] (1-based). Can be repeated."
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Output file (default: stdout)"
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.JSON, "--format", help="Output format (json or tsv)"
    ),
    ploidy: int = typer.Option(2, "--ploidy", "-p", help="Allele copies per sample"),
    alphabet: str = typer.Option(
        ",".join(DEFAULT_ALPHABET),
        "--alphabet",
        help="Comma-separated genotype alleles; R is the reference allele",
    ),
    top_n: int = typer.Option(
        3, "--top-n", help="Genotypes kept per sample when pruning combinations"
    ),
    max_exact: int = typer.Option(
        256, "--max-exact-combinations", help="Largest combination space enumerated exactly"
    ),
    prior: PriorKind = typer.Option(
        PriorKind.VARIANT_COUNT, "--prior", help="Prior over genotype combinations"
    ),
    theta: float = typer.Option(
        0.001, "--theta", help="Per-sample prior probability of a non-reference genotype"
    ),
    min_variant_prob: float = typer.Option(
        0.0, "--min-variant-prob", help="Only report positions with at least this P(variation)"
    ),
    report_top: int | None = typer.Option(
        None, "--report-top", help="Report only the N most probable genotypes per sample"
    ),
    min_mapq: int = typer.Option(20, "--min-mapq", help="Minimum mapping quality"),
    min_baseq: int = typer.Option(0, "--min-baseq", help="Minimum base quality"),
    filter_duplicates: bool = typer.Option(True, help="Filter duplicate reads"),
    mask_indel_reads: bool = typer.Option(
        True, help="Skip every base of reads whose alignment contains an indel"
    ),
    threads: int = typer.Option(1, "--threads", "-t", help="Parallel workers (per region)"),
    debug_pool: bool = typer.Option(
        False, "--debug-pool", help="Poison released alleles and fail on reuse"
    ),
    log_file: str | None = typer.Option(None, "--log-file", help="Also write logs to this file"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable verbose debug logging"),
):
    """
    Call per-sample genotype posteriors at every covered position.
    """
    setup_logging(verbose=verbose, log_file=log_file)

    bams_dict: dict[str, Path] = {}

    # 1. Process direct BAM arguments
    for value in bam_files or []:
        sample_name, bam_path = _parse_bam(value)
        if not bam_path.exists():
            console.print(f"[bold red]Error: BAM file not found: {bam_path}[/bold red]")
            raise typer.Exit(code=1)
        bams_dict[sample_name] = bam_path

    # 2. Process BAM list file
    if bam_list:
        if not bam_list.exists():
            console.print(f"[bold red]Error: BAM list file not found: {bam_list}[/bold red]")
            raise typer.Exit(code=1)

        with open(bam_list) as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                sample_name, bam_path = _parse_bam(line)
                if not bam_path.exists():
                    console.print(
                        f"[yellow]Warning: BAM file from list not found: {bam_path}[/yellow]"
                    )
                    continue
                bams_dict[sample_name] = bam_path

    if not bams_dict:
        console.print(
            "[bold red]Error: No valid BAM files provided via --bam or --bam-list[/bold red]"
        )
        raise typer.Exit(code=1)

    try:
        config = BayesConfig(
            bam_files=bams_dict,
            reference_fasta=reference,
            targets=targets,
            regions=regions or [],
            output=output,
            output_format=output_format,
            min_mapping_quality=min_mapq,
            min_base_quality=min_baseq,
            filter_duplicates=filter_duplicates,
            mask_indel_reads=mask_indel_reads,
            threads=threads,
            debug_pool=debug_pool,
            model=ModelConfig(
                ploidy=ploidy,
                alphabet=alphabet.split(","),
                top_n=top_n,
                max_exact_combinations=max_exact,
                prior=prior,
                theta=theta,
                min_variant_probability=min_variant_prob,
                report_top=report_top,
            ),
        )
    except ValidationError as e:
        console.print(f"[bold red]Invalid configuration:[/bold red]\n{e}")
        raise typer.Exit(code=1) from e

    pipeline = Pipeline(config)
    try:
        pipeline.run()
    except KeyboardInterrupt:
        console.print("[bold red]Aborted.[/bold red]")
        raise typer.Exit(code=130)
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    if pipeline.interrupted:
        raise typer.Exit(code=130)


if __name__ == "__main__":
    app()
