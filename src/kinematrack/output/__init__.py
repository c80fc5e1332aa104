from .csv_io import (
    parse_samples_csv,
    parse_samples_csv_with_layout,
    read_samples_csv,
    read_samples_csv_with_layout,
    samples_to_csv,
    write_samples_csv,
)
from .sinks import CsvSink, JsonlSink, SampleSink, SampleSinks, write_report_json

__all__ = [
    "CsvSink",
    "JsonlSink",
    "SampleSink",
    "SampleSinks",
    "parse_samples_csv",
    "parse_samples_csv_with_layout",
    "read_samples_csv",
    "read_samples_csv_with_layout",
    "samples_to_csv",
    "write_report_json",
    "write_samples_csv",
]
