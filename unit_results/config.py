# config.py — app constants, report theme, logging setup

import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

# ───────────────────────── App config ─────────────────────────
APP_TITLE = "Student Result Analysis"
APP_VER = "v1.2 (programme + subject lenses)"
ACCEPTED_TYPES = ["xlsx", "xls", "csv"]
LOG_LEVEL_ENV = "UNIT_RESULTS_LOG_LEVEL"

GRADE_COLORS = MappingProxyType({
    "A+": "#10b981", "A": "#059669", "A-": "#047857",
    "B+": "#3b82f6", "B": "#2563eb", "B-": "#1d4ed8",
    "C+": "#f59e0b", "C": "#d97706", "C-": "#b45309",
    "D+": "#ef4444", "D": "#dc2626", "F": "#b91c1c",
})
ETHNICITY_COLORS = (
    "#8b5cf6", "#06b6d4", "#10b981", "#f59e0b", "#ef4444", "#6366f1", "#ec4899", "#84cc16",
)
UNKNOWN_COLOR = "#6b7280"


@dataclass(frozen=True)
class ReportTheme:
    """Palette and label budgets handed to the report projector."""
    grade_colors: Mapping[str, str] = field(default_factory=lambda: GRADE_COLORS)
    ethnicity_colors: Tuple[str, ...] = ETHNICITY_COLORS
    unknown_color: str = UNKNOWN_COLOR
    programme_label_limit: int = 20
    subject_label_limit: int = 25
    top_subjects: int = 10


DEFAULT_THEME = ReportTheme()


def configure_logging(level=None) -> None:
    level = level or os.environ.get(LOG_LEVEL_ENV, "INFO")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
