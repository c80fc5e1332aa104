from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, List, Optional, Protocol

from kinematrack.kinematics.analysis import report_to_dict
from kinematrack.output.csv_io import CsvLayout, format_row, header_for
from kinematrack.utils.types import Report, SampleRecord


class SampleSink(Protocol):
    def open(self) -> None:
        ...

    def write(self, s: SampleRecord) -> None:
        ...

    def close(self) -> None:
        ...


def _open_for_write(path: str) -> IO[str]:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    return open(path, "w", newline="", encoding="utf-8")


@dataclass
class CsvSink(SampleSink):
    """Streams records in the export CSV format (same columns as ``samples_to_csv``)."""

    path: str
    decimals: int = 6
    layout: CsvLayout = "full"
    _f: Optional[IO[str]] = None
    _w: Optional[Any] = None

    def open(self) -> None:
        self._f = _open_for_write(self.path)
        self._w = csv.writer(self._f, lineterminator="\n")
        self._w.writerow(header_for(self.layout))

    def write(self, s: SampleRecord) -> None:
        if self._w is None:
            raise RuntimeError(f"CSV sink {self.path} is not open")
        self._w.writerow(format_row(s, self.decimals, self.layout))

    def close(self) -> None:
        if self._f is not None:
            self._f.close()
        self._f = None
        self._w = None


@dataclass
class JsonlSink(SampleSink):
    path: str
    _f: Optional[IO[str]] = None

    def open(self) -> None:
        self._f = _open_for_write(self.path)

    def write(self, s: SampleRecord) -> None:
        if self._f is None:
            raise RuntimeError(f"JSONL sink {self.path} is not open")
        self._f.write(json.dumps({"t": s.t, "x": s.x, "y": s.y, "vx": s.vx, "vy": s.vy, "v": s.speed}) + "\n")

    def close(self) -> None:
        if self._f is not None:
            self._f.close()
        self._f = None


@dataclass
class SampleSinks:
    """Fan-out of per-sample sinks; usable as a context manager."""

    csv: Optional[CsvSink] = None
    jsonl: Optional[JsonlSink] = None
    extra: List[SampleSink] = field(default_factory=list)

    def _all(self) -> List[SampleSink]:
        sinks: List[SampleSink] = [s for s in (self.csv, self.jsonl) if s is not None]
        return sinks + list(self.extra)

    def open(self) -> None:
        for sink in self._all():
            sink.open()

    def write(self, s: SampleRecord) -> None:
        for sink in self._all():
            sink.write(s)

    def close(self) -> None:
        for sink in self._all():
            sink.close()

    def __enter__(self) -> "SampleSinks":
        self.open()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def write_report_json(path: str, report: Report) -> None:
    with _open_for_write(path) as f:
        json.dump(report_to_dict(report), f, ensure_ascii=False, indent=2)
        f.write("\n")
