# report.py — AggregationResult -> chart series + export sheets
# Projection only: counts and rates are read off the result, never recomputed here.

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pandas as pd

from .aggregate import AggregationResult
from .config import DEFAULT_THEME, ReportTheme
from .grades import GRADE_ORDER

ALL_PROGRAMMES = "All Programmes"


# ───────────────────────── Labels & colours ─────────────────────────
def truncate_label(label: str, limit: int) -> str:
    return label[:limit] + "..." if len(label) > limit else label


def grade_color(grade: str, theme: ReportTheme = DEFAULT_THEME) -> str:
    return theme.grade_colors.get(grade, theme.unknown_color)


def ethnicity_color(index: int, theme: ReportTheme = DEFAULT_THEME) -> str:
    return theme.ethnicity_colors[index % len(theme.ethnicity_colors)]


def report_file_name(programme: Optional[str], extension: str = ".xlsx") -> str:
    stem = re.sub(r"[^a-zA-Z0-9]", "_", programme or ALL_PROGRAMMES)
    return f"{stem}_Analysis_Report{extension}"


# ───────────────────────── Chart series ─────────────────────────
@dataclass(frozen=True)
class ChartData:
    grade_distribution: List[Dict[str, Any]]
    programme_grades: List[Dict[str, Any]]
    subject_performance: List[Dict[str, Any]]
    ethnicity: Optional[List[Dict[str, Any]]]


def build_chart_data(result: AggregationResult, theme: ReportTheme = DEFAULT_THEME) -> ChartData:
    grades = [
        {"grade": g, "count": n, "percentage": result.grade_percentage(g), "color": grade_color(g, theme)}
        for g, n in result.grade_counts.items()
    ]
    programmes = [
        {
            **counts,
            "programme": truncate_label(p, theme.programme_label_limit),
            "full_programme": p,
            "total": sum(counts.values()),
        }
        for p, counts in result.programme_grades.items()
    ]
    subjects = [
        {
            **s.grade_counts,
            "subject": truncate_label(s.name, theme.subject_label_limit),
            "full_subject": s.name,
            "pass_rate": s.pass_rate,
            "total_students": s.total,
        }
        for s in result.subjects[: theme.top_subjects]
    ]
    ethnicity = None
    if result.has_ethnicity_data:
        ethnicity = [
            {"ethnicity": e.ethnicity, "count": e.count, "percentage": e.percentage,
             "color": ethnicity_color(i, theme)}
            for i, e in enumerate(result.ethnicity)
        ]
    return ChartData(grades, programmes, subjects, ethnicity)


# ───────────────────────── Export sheets ─────────────────────────
@dataclass(frozen=True, eq=False)
class ReportSheet:
    frame: pd.DataFrame
    title: Optional[str] = None


def summary_frame(result: AggregationResult, blank_count: int = 0) -> pd.DataFrame:
    row = {"Programme Name": result.programme or ALL_PROGRAMMES}
    if result.subject is not None:
        row["Subject"] = result.subject
    row.update({
        "Pass Rate": f"{result.pass_rate}%",
        "Excellence Rate": f"{result.excellence_rate}%",
        "Failure Rate": f"{result.failure_rate}%",
        "Total EFTS": result.total_efts,
        "Total Pass Students": result.pass_count,
        "Total Fail": result.fail_count,
        "Total Withdraw": result.withdraw_count,
        "Blank": int(blank_count),
    })
    return pd.DataFrame([row])


def grade_frame(result: AggregationResult) -> pd.DataFrame:
    return pd.DataFrame(
        [(g, n, f"{result.grade_percentage(g)}%") for g, n in result.grade_counts.items()],
        columns=["Grade", "Count", "Percentage"],
    )


def raw_frame(result: AggregationResult) -> pd.DataFrame:
    return pd.DataFrame([dict(r.source) for r in result.records])


def subject_frame(result: AggregationResult) -> pd.DataFrame:
    rows = []
    for s in result.subjects:
        row = {"Subject": s.name, "Total": s.total, "Pass Rate": f"{s.pass_rate}%"}
        row.update({g: s.grade_counts.get(g, 0) for g in GRADE_ORDER})
        rows.append(row)
    return pd.DataFrame(rows, columns=["Subject", "Total", "Pass Rate", *GRADE_ORDER])


def build_report_sheets(result: AggregationResult, blank_count: int = 0) -> Dict[str, ReportSheet]:
    """Sheet name -> ReportSheet, in workbook order."""
    sheets = {
        "Programme Summary": ReportSheet(summary_frame(result, blank_count), "Result Analysis Report"),
        "Grade Distribution": ReportSheet(grade_frame(result), "Grade Distribution"),
        "Raw Data": ReportSheet(raw_frame(result)),
    }
    if result.programme is not None or len(result.subjects) > 1:
        sheets["Subject Breakdown"] = ReportSheet(subject_frame(result), "Subject-wise Performance")
    return sheets
