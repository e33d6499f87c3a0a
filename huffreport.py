#!/usr/bin/env python3
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

log = logging.getLogger("huffreport")

# the two field names the encoder service has used for heap snapshots
BUILD_STEP_KEYS = ("buildSteps", "build_steps")


class MalformedResponse(ValueError):
    """Upstream response carries neither encoded data nor a message."""


# ---------------------------------
# Data records
# ---------------------------------
@dataclass
class SourceFile:
    name: str
    byte_size: int


@dataclass
class HeapSnapshot:
    # stage: as numbered by the service (0- or 1-based)
    # heap: (symbol, weight) pairs in queue order; internal nodes have synthetic labels
    stage: int
    heap: List[Tuple[str, Any]] = field(default_factory=list)


@dataclass
class CanonicalResult:
    encoded_data: str
    crc: int
    filename: str
    original_size: int
    compressed_size: int
    crc_valid: bool
    compression_ratio: float
    download_url: Optional[str] = None
    codes: Dict[str, str] = field(default_factory=dict)
    tree_image_base64: Optional[str] = None
    frequencies: Dict[str, int] = field(default_factory=dict)
    probabilities: Dict[str, float] = field(default_factory=dict)
    build_steps: List[HeapSnapshot] = field(default_factory=list)
    message: Optional[str] = None


@dataclass
class SymbolStatistic:
    symbol: str
    frequency: int
    probability: float
    codeword: str
    length: int


@dataclass
class Aggregates:
    entropy: float
    avg_length: float
    variance: float
    efficiency: float
    bit_rate: float


@dataclass
class PivotRow:
    symbol: str
    cells: List[str]


@dataclass
class Report:
    result: CanonicalResult
    symbols: List[SymbolStatistic]
    aggregates: Aggregates
    pivot: List[PivotRow]
    stage_labels: List[str]


# ------------------------------------
# 1) Raw response -> canonical result
# ------------------------------------
def resolve_build_steps(raw: Dict[str, Any]) -> list:
    """
    Pick the heap snapshot list out of a raw response.

    The first key in BUILD_STEP_KEYS holding a non-empty list wins; if none
    does, the result is an empty list.
    """
    for key in BUILD_STEP_KEYS:
        steps = raw.get(key)
        if steps:
            log.debug(f"Using heap snapshots from '{key}' ({len(steps)} stages)")
            return list(steps)
    return []


def parse_snapshot(item: Dict[str, Any]) -> HeapSnapshot:
    stage = item.get("step")
    if stage is None:
        stage = item.get("stage", 0)
    pairs = [(str(pair[0]), pair[1]) for pair in item.get("heap") or []]
    return HeapSnapshot(stage, pairs)


def compression_ratio(original_size: int, compressed_size: int) -> float:
    # percent saved; an empty source file reports 0 instead of dividing by zero
    if original_size > 0:
        return (original_size - compressed_size) / original_size * 100
    return 0.0


def normalize(raw: Dict[str, Any], source: SourceFile) -> CanonicalResult:
    if not raw.get("encodedData") and not raw.get("message"):
        raise MalformedResponse("Incomplete response: neither encoded data nor a message was returned")

    encoded = raw.get("encodedData") or ""
    # measured here, never taken from the service
    compressed_size = len(encoded.encode("utf-8"))
    original_size = source.byte_size

    hint = raw.get("originalSize")
    if hint is not None and hint != original_size:
        log.debug(f"Service reported originalSize={hint}, using source size {original_size}")

    crc = raw.get("crc")
    result = CanonicalResult(
        encoded_data=encoded,
        crc=crc if crc is not None else 0,
        filename=raw.get("filename") or source.name,
        original_size=original_size,
        compressed_size=compressed_size,
        crc_valid=True,  # not recomputed; the service is trusted
        compression_ratio=compression_ratio(original_size, compressed_size),
        download_url=raw.get("downloadUrl"),
        codes=dict(raw.get("codes") or {}),
        tree_image_base64=raw.get("tree_image_base64"),
        frequencies=dict(raw.get("frequencies") or {}),
        probabilities=dict(raw.get("probabilities") or {}),
        build_steps=[parse_snapshot(s) for s in resolve_build_steps(raw)],
        message=raw.get("message"),
    )
    log.debug(f"Normalized {result.filename}: {original_size} -> {compressed_size} bytes "
              f"({result.compression_ratio:.2f}%)")
    return result


# ---------------------------
# 2) Per-symbol statistics
# ---------------------------
def _as_probability(value: Any) -> float:
    # null or anything float() rejects becomes NaN
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def compute_symbol_table(frequencies: Dict[str, int],
                         probabilities: Dict[str, float],
                         codes: Dict[str, str]) -> List[SymbolStatistic]:
    table = []
    for sym, freq in frequencies.items():
        code = str(codes.get(sym) or "")
        prob = _as_probability(probabilities[sym]) if sym in probabilities else 0.0
        table.append(SymbolStatistic(sym, freq, prob, code, len(code)))
    return table


def _self_information(p: float) -> float:
    # p*log2(1/p) -> 0 as p -> 0; NaN, negative or infinite p comes back as NaN
    if p == 0:
        return 0.0
    if 0 < p < math.inf:
        return -p * math.log2(p)
    return math.nan


def compute_aggregates(symbols: List[SymbolStatistic], symbol_rate: float = 1) -> Aggregates:
    """
    Entropy, expected codeword length, length variance, coding efficiency and
    bit rate over the symbol table.

    Efficiency falls back to entropy / 1 when the average length is 0, so an
    empty table reports 0 rather than failing. bit_rate scales bits/symbol by
    symbol_rate (symbols per second).
    """
    entropy = sum(_self_information(s.probability) for s in symbols)
    avg_length = sum(s.probability * s.length for s in symbols)
    variance = sum(s.probability * (s.length - avg_length) * (s.length - avg_length) for s in symbols)
    efficiency = entropy / (avg_length if avg_length != 0 else 1)
    return Aggregates(
        entropy=float(entropy),
        avg_length=float(avg_length),
        variance=float(variance),
        efficiency=float(efficiency),
        bit_rate=float(symbol_rate * avg_length),
    )


# ---------------------------
# 3) Build-history pivot
# ---------------------------
def format_weight(weight: Any) -> str:
    if isinstance(weight, float) and weight.is_integer():
        return str(int(weight))
    return str(weight)


def build_pivot_table(snapshots: List[HeapSnapshot]) -> List[PivotRow]:
    """
    One row per symbol seen in any snapshot (sorted), one cell per snapshot.

    A cell is empty when the symbol is not in that stage's heap, whether it
    has not appeared yet or was already merged into a parent.
    """
    symbols = sorted({sym for snap in snapshots for sym, _ in snap.heap})
    rows = []
    for sym in symbols:
        cells = []
        for snap in snapshots:
            found = next((w for s, w in snap.heap if s == sym), None)
            cells.append(format_weight(found) if found is not None else "")
        rows.append(PivotRow(sym, cells))
    return rows


def stage_labels(snapshots: List[HeapSnapshot]) -> List[str]:
    return [f"Stage {snap.stage}" for snap in snapshots]


# -------------------------
# 4) Report
# -------------------------
def build_report(raw: Dict[str, Any], source: SourceFile, symbol_rate: float = 1) -> Report:
    result = normalize(raw, source)
    symbols = compute_symbol_table(result.frequencies, result.probabilities, result.codes)
    return Report(
        result=result,
        symbols=symbols,
        aggregates=compute_aggregates(symbols, symbol_rate),
        pivot=build_pivot_table(result.build_steps),
        stage_labels=stage_labels(result.build_steps),
    )


def symbol_frame(symbols: List[SymbolStatistic]) -> pd.DataFrame:
    return pd.DataFrame(
        [(s.symbol, s.frequency, s.probability, s.codeword, s.length) for s in symbols],
        columns=["Symbol", "Frequency", "Probability", "Codeword", "Length"],
    )


def pivot_frame(rows: List[PivotRow], labels: List[str]) -> pd.DataFrame:
    return pd.DataFrame([[r.symbol, *r.cells] for r in rows],
                        columns=["Symbol", *labels])


def format_ratio(value: Optional[float]) -> str:
    if value is None or math.isnan(value):
        return "N/A"
    return f"{value:.2f}"
