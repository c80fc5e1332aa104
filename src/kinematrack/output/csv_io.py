from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Iterable, List, Literal, Sequence, Tuple

from kinematrack.utils.types import SampleRecord

CsvLayout = Literal["full", "speed"]

FULL_HEADER = ("t", "x", "y", "vx", "vy")
SPEED_HEADER = ("t", "x", "y", "v")


def _check_decimals(decimals: int) -> int:
    d = int(decimals)
    if d < 4 or d > 6:
        raise ValueError(f"decimals must be within [4, 6], got {decimals}")
    return d


def header_for(layout: CsvLayout) -> Sequence[str]:
    if layout == "full":
        return FULL_HEADER
    if layout == "speed":
        return SPEED_HEADER
    raise ValueError(f"Unknown CSV layout: {layout}")


def format_row(s: SampleRecord, decimals: int = 6, layout: CsvLayout = "full") -> List[str]:
    d = _check_decimals(decimals)
    values = [s.t, s.x, s.y, s.vx, s.vy] if layout == "full" else [s.t, s.x, s.y, s.speed]
    return [f"{v:.{d}f}" for v in values]


def samples_to_csv(samples: Iterable[SampleRecord], decimals: int = 6, layout: CsvLayout = "full") -> str:
    """Render samples as ``\\n``-joined CSV text without a trailing newline."""
    lines = [",".join(header_for(layout))]
    lines.extend(",".join(format_row(s, decimals, layout)) for s in samples)
    return "\n".join(lines)


def write_samples_csv(path: str, samples: Iterable[SampleRecord], decimals: int = 6, layout: CsvLayout = "full") -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(samples_to_csv(samples, decimals, layout))


def parse_samples_csv_with_layout(text: str) -> Tuple[CsvLayout, List[SampleRecord]]:
    """Parse either export layout.

    Rows of the ``speed`` layout carry only the speed magnitude; it is stored
    as ``vx`` with ``vy = 0``, so only the ``speed`` axis is meaningful for
    their filter velocities.
    """
    reader = csv.DictReader(io.StringIO(text))
    fields = tuple(reader.fieldnames or ())
    layout: CsvLayout
    if fields == FULL_HEADER:
        layout = "full"
    elif fields == SPEED_HEADER:
        layout = "speed"
    else:
        raise ValueError(
            f"Expected CSV header {','.join(FULL_HEADER)} or {','.join(SPEED_HEADER)}, got {','.join(fields)}"
        )
    out: List[SampleRecord] = []
    for line_no, row in enumerate(reader, start=2):
        try:
            if layout == "full":
                vx = float(row["vx"])
                vy = float(row["vy"])
            else:
                vx = float(row["v"])
                vy = 0.0
            out.append(SampleRecord(t=float(row["t"]), x=float(row["x"]), y=float(row["y"]), vx=vx, vy=vy))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Malformed sample row at line {line_no}: {row}") from e
    return layout, out


def parse_samples_csv(text: str) -> List[SampleRecord]:
    return parse_samples_csv_with_layout(text)[1]


def read_samples_csv_with_layout(path: str) -> Tuple[CsvLayout, List[SampleRecord]]:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return parse_samples_csv_with_layout(f.read())


def read_samples_csv(path: str) -> List[SampleRecord]:
    return read_samples_csv_with_layout(path)[1]

