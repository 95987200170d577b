"""Tests for output writers."""

import csv
import json

import pytest

from bayescall.io.output import JsonWriter, TsvWriter, open_writer
from bayescall.models.core import OutputFormat, PositionResult, SampleResult


@pytest.fixture
def result() -> PositionResult:
    return PositionResult(
        sequence="chr1",
        position=11,
        reference="T",
        variant_probability=0.998,
        combinations=100,
        samples={
            "S1": SampleResult(
                coverage=10,
                posteriors={"R/R": 0.001, "R/A": 0.004, "A/A": 0.995},
                scores={"R/R": 0.00434, "R/A": 0.01741, "A/A": 23.0103},
                variant_probability=0.999,
            ),
            "S2": SampleResult(
                coverage=0,
                posteriors={"R/R": 1 / 3, "R/A": 1 / 3, "A/A": 1 / 3},
                scores={"R/R": 1.76091, "R/A": 1.76091, "A/A": 1.76091},
                variant_probability=2 / 3,
                informative=False,
            ),
        },
    )


def test_json_writer(temp_dir, result):
    """One JSON object per position, genotypes ranked by posterior."""
    path = temp_dir / "calls.jsonl"
    with JsonWriter(path) as writer:
        writer.write(result)
        writer.write(result.model_copy(update={"position": 12}))

    lines = path.read_text().splitlines()
    assert len(lines) == 2

    record = json.loads(lines[0])
    assert record["sequence"] == "chr1"
    assert record["position"] == 11
    assert record["reference"] == "T"
    assert record["variant_probability"] == 0.998
    assert "pruned" not in record

    s1 = record["samples"]["S1"]
    assert s1["coverage"] == 10
    assert list(s1["genotypes"]) == ["A/A", "R/A", "R/R"]
    assert s1["genotypes"]["A/A"] == 23.0103
    assert s1["genotypes"]["R/R"] == 0.0043
    assert record["samples"]["S2"]["coverage"] == 0

    assert json.loads(lines[1])["position"] == 12


def test_json_writer_flags(temp_dir, result):
    path = temp_dir / "calls.jsonl"
    with JsonWriter(path) as writer:
        writer.write(result.model_copy(update={"pruned": True, "degenerate": True}))

    record = json.loads(path.read_text())
    assert record["pruned"] is True
    assert record["degenerate"] is True


def test_report_top_limits_genotypes(temp_dir, result):
    path = temp_dir / "calls.jsonl"
    with JsonWriter(path, report_top=1) as writer:
        writer.write(result)

    record = json.loads(path.read_text())
    assert list(record["samples"]["S1"]["genotypes"]) == ["A/A"]


def test_tsv_writer(temp_dir, result):
    """One row per sample with the best genotype."""
    path = temp_dir / "calls.tsv"
    with TsvWriter(path) as writer:
        writer.write(result)
        assert writer.records == 1

    with open(path) as f:
        rows = list(csv.DictReader(f, delimiter="\t"))

    assert [r["sample"] for r in rows] == ["S1", "S2"]
    assert rows[0]["genotype"] == "A/A"
    assert rows[0]["posterior"] == "0.995"
    assert rows[0]["score"] == "23.01"
    assert rows[0]["position"] == "11"
    assert rows[1]["coverage"] == "0"


def test_tsv_header_written_once(temp_dir, result):
    path = temp_dir / "calls.tsv"
    with TsvWriter(path) as writer:
        writer.write(result)
        writer.write(result)

    lines = path.read_text().splitlines()
    assert lines[0].split("\t") == TsvWriter.fieldnames
    assert len(lines) == 5


def test_stdout_is_not_closed(capsys, result):
    writer = JsonWriter()
    writer.write(result)
    writer.close()

    out = capsys.readouterr().out
    assert json.loads(out)["position"] == 11


def test_open_writer(temp_dir):
    with open_writer(OutputFormat.TSV, temp_dir / "a.tsv") as writer:
        assert isinstance(writer, TsvWriter)
    with open_writer(OutputFormat.JSON, temp_dir / "a.jsonl", report_top=2) as writer:
        assert isinstance(writer, JsonWriter)
        assert writer.report_top == 2
