# normalize.py — loosely-typed spreadsheet rows -> canonical StudentRecord
# Header spellings vary between exports ("course desc", "Course Desc", "COURSE DESC"),
# so every semantic field is resolved through an ordered alias list.

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from .grades import canonical_grade

logger = logging.getLogger(__name__)

# ───────────────────────── Header aliases ─────────────────────────
HEADER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "programme": ("course desc", "Course Desc", "COURSE DESC", "courseDesc"),
    "unit_code": ("unit code", "Unit Code", "UNIT CODE", "unitCode"),
    "unit_description": (
        "unit offer description", "Unit Offer Description", "UNIT OFFER DESCRIPTION",
        "unitOfferDescription",
    ),
    "grade_code": ("cuor result code", "Cuor Result Code", "CUOR RESULT CODE", "cuorResultCode"),
    "efts_factor": (
        "cuor efts factor", "Cuor Efts Factor", "CUOR EFTS FACTOR", "CUOR EFTS Factor",
        "cuorEftsFactor",
    ),
    "ethnicity": (
        "ethnicity", "Ethnicity", "ETHNICITY",
        "ethnic group", "Ethnic Group", "ETHNIC GROUP",
        "race", "Race", "RACE",
    ),
    "student_id": ("studentId", "student id", "Student ID", "STUDENT ID"),
}

REQUIRED_FIELDS = ("programme", "unit_code", "grade_code")


def fold_header(key) -> str:
    return re.sub(r"[\s_]+", " ", str(key).strip()).lower()


def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def lookup(row: Mapping[str, Any], semantic: str, folded: Optional[Dict[str, List[str]]] = None):
    """First present value among the field's aliases: exact key first, then case/spacing-folded."""
    if folded is None:
        folded = _fold_index(row)
    for alias in HEADER_ALIASES[semantic]:
        for key in (alias, *folded.get(fold_header(alias), ())):
            if key in row and not _is_missing(row[key]):
                return row[key]
    return None


def _fold_index(row: Mapping[str, Any]) -> Dict[str, List[str]]:
    """folded header -> every original key that folds to it, in column order."""
    index: Dict[str, List[str]] = {}
    for key in row:
        index.setdefault(fold_header(key), []).append(key)
    return index


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def _optional_text(value) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def parse_efts(value) -> float:
    if value is None:
        return 0.0
    try:
        f = float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
    return f if math.isfinite(f) else 0.0


# ───────────────────────── Records ─────────────────────────
@dataclass(frozen=True)
class StudentRecord:
    programme: str
    unit_code: str
    unit_description: str
    grade_code: str
    efts_factor: float = 0.0
    ethnicity: Optional[str] = None
    student_id: Optional[str] = None
    source: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False, repr=False)

    @property
    def subject(self) -> str:
        return self.unit_description or self.unit_code

    @property
    def grade(self) -> str:
        return canonical_grade(self.grade_code)

    @property
    def identity(self) -> str:
        return self.student_id or f"{self.unit_code}-{self.grade_code}"


@dataclass(frozen=True)
class RejectedRow:
    reason: str
    source: Mapping[str, Any] = field(repr=False)


@dataclass(frozen=True)
class NormalizedBatch:
    records: Tuple[StudentRecord, ...]
    rejected: Tuple[RejectedRow, ...] = ()
    columns: Tuple[str, ...] = ()

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)

    def blank_grade_count(self, programme: Optional[str] = None, subject: Optional[str] = None) -> int:
        """Rows that named a programme and unit but left the result code empty."""
        n = 0
        for r in self.rejected:
            if r.reason != "missing grade_code":
                continue
            folded = _fold_index(r.source)
            if programme is not None and _text(lookup(r.source, "programme", folded)) != programme:
                continue
            if subject is not None:
                name = _text(lookup(r.source, "unit_description", folded)) or _text(lookup(r.source, "unit_code", folded))
                if name != subject:
                    continue
            n += 1
        return n


def normalize_row(row: Mapping[str, Any]):
    """Return (record, None) for a usable row, (None, reason) otherwise."""
    folded = _fold_index(row)
    values = {name: lookup(row, name, folded) for name in HEADER_ALIASES}

    programme = _text(values["programme"])
    unit_code = _text(values["unit_code"])
    grade_code = _text(values["grade_code"])
    for name, v in zip(REQUIRED_FIELDS, (programme, unit_code, grade_code)):
        if not v:
            return None, f"missing {name}"

    record = StudentRecord(
        programme=programme,
        unit_code=unit_code,
        unit_description=_text(values["unit_description"]),
        grade_code=grade_code,
        efts_factor=parse_efts(values["efts_factor"]),
        ethnicity=_optional_text(values["ethnicity"]),
        student_id=_optional_text(values["student_id"]),
        source=dict(row),
    )
    return record, None


def normalize_rows(rows: Iterable[Mapping[str, Any]]) -> NormalizedBatch:
    records, rejected, columns = [], [], {}
    for row in rows:
        for key in row:
            columns.setdefault(str(key), None)
        record, reason = normalize_row(row)
        if record is None:
            rejected.append(RejectedRow(reason, dict(row)))
        else:
            records.append(record)
    logger.info("Normalized %d rows: %d usable, %d rejected",
                len(records) + len(rejected), len(records), len(rejected))
    return NormalizedBatch(tuple(records), tuple(rejected), tuple(columns))


def normalize_frame(df: pd.DataFrame) -> NormalizedBatch:
    if df is None or df.empty:
        return NormalizedBatch(())
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]
    return normalize_rows(df.to_dict(orient="records"))
