import math

import pytest

from huffreport import (PivotRow, SourceFile, build_report, format_ratio, pivot_frame,
                        symbol_frame)

RAW = {
    "encodedData": "0101",
    "crc": 123,
    "codes": {"a": "0", "b": "10"},
    "frequencies": {"a": 3, "b": 1},
    "probabilities": {"a": 0.75, "b": 0.25},
    "build_steps": [
        {"step": 1, "heap": [["a", 3], ["b", 1]]},
        {"step": 2, "heap": [["ab", 4]]},
    ],
}


def test_build_report_chains_everything():
    report = build_report(RAW, SourceFile("in.txt", 10), symbol_rate=2)
    assert report.result.compression_ratio == pytest.approx(60.0)
    assert [s.symbol for s in report.symbols] == ["a", "b"]
    assert report.aggregates.avg_length == pytest.approx(1.25)
    assert report.aggregates.bit_rate == pytest.approx(2.5)
    assert report.stage_labels == ["Stage 1", "Stage 2"]
    assert [r.symbol for r in report.pivot] == ["a", "ab", "b"]


def test_build_report_on_message_only_response():
    report = build_report({"message": "ok"}, SourceFile("in.huf", 0))
    assert report.symbols == []
    assert report.pivot == []
    assert report.aggregates.efficiency == 0


def test_symbol_frame():
    report = build_report(RAW, SourceFile("in.txt", 10))
    df = symbol_frame(report.symbols)
    assert list(df.columns) == ["Symbol", "Frequency", "Probability", "Codeword", "Length"]
    assert df.shape == (2, 5)
    assert df.iloc[1].tolist() == ["b", 1, 0.25, "10", 2]


def test_pivot_frame():
    df = pivot_frame([PivotRow("a", ["3", ""]), PivotRow("b", ["", "1"])],
                     ["Stage 1", "Stage 2"])
    assert list(df.columns) == ["Symbol", "Stage 1", "Stage 2"]
    assert df.iloc[0].tolist() == ["a", "3", ""]


def test_empty_frames_keep_headers():
    assert list(symbol_frame([]).columns)[0] == "Symbol"
    assert pivot_frame([], []).empty


def test_format_ratio():
    assert format_ratio(60.0) == "60.00"
    assert format_ratio(-12.5) == "-12.50"
    assert format_ratio(None) == "N/A"
    assert format_ratio(math.nan) == "N/A"


def test_build_report_absorbs_bad_probabilities_and_codes():
    raw = dict(RAW, codes={"a": None, "b": "1"}, probabilities={"a": None, "b": "0.25"})
    report = build_report(raw, SourceFile("in.txt", 10))
    assert report.symbols[0].codeword == ""
    assert report.symbols[1].probability == 0.25
    assert math.isnan(report.aggregates.entropy)
