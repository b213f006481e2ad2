"""Student-unit result analytics: normalize rows, aggregate grades, project charts and report sheets."""

from .aggregate import NO_DATA, AggregationResult, ResultFilter, aggregate, programme_options, subject_options
from .normalize import NormalizedBatch, StudentRecord, normalize_frame, normalize_rows
from .report import build_chart_data, build_report_sheets, report_file_name

__all__ = [
    "NO_DATA",
    "AggregationResult",
    "NormalizedBatch",
    "ResultFilter",
    "StudentRecord",
    "aggregate",
    "build_chart_data",
    "build_report_sheets",
    "normalize_frame",
    "normalize_rows",
    "programme_options",
    "report_file_name",
    "subject_options",
]
