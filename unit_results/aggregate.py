# aggregate.py — canonical records -> grouped, ordered, percentage-bearing summaries
# Pure: every call rebuilds an AggregationResult from (records, filter); nothing is cached or mutated.

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .grades import EXCELLENT_GRADES, FAIL_GRADES, GRADE_ORDER, PASS_GRADES, is_withdrawal, order_grades
from .normalize import StudentRecord

logger = logging.getLogger(__name__)

TOP_SUBJECTS = 10


# ───────────────────────── Rounding ─────────────────────────
def percent(count: int, total: int) -> str:
    """count/total as a percentage, one decimal place, half-up. total must be > 0."""
    pct = Decimal(int(count)) * 100 / Decimal(int(total))
    return str(pct.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


# Wide enough to add any finite doubles exactly and still quantize to 0.01.
_EFTS_PREC = 800


def sum_2dp_half_up(values: Iterable[float]) -> str:
    """Exact decimal sum of the values, two decimal places, half-up."""
    with localcontext() as ctx:
        ctx.prec = _EFTS_PREC
        total = sum((Decimal(repr(float(v))) for v in values), Decimal(0))
        return str(total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


# ───────────────────────── Types ─────────────────────────
class _NoData:
    """Sentinel for an empty active subset; distinct from an all-zero summary."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "NO_DATA"


NO_DATA = _NoData()


@dataclass(frozen=True)
class ResultFilter:
    programme: Optional[str] = None
    subject: Optional[str] = None

    def matches(self, record: StudentRecord) -> bool:
        if self.programme is not None and record.programme != self.programme:
            return False
        if self.subject is not None and record.subject != self.subject:
            return False
        return True


@dataclass(frozen=True)
class SubjectSummary:
    name: str
    total: int
    grade_counts: Mapping[str, int]
    pass_count: int
    pass_rate: str


@dataclass(frozen=True)
class EthnicityShare:
    ethnicity: str
    count: int
    percentage: str


@dataclass(frozen=True)
class AggregationResult:
    total_records: int
    unique_programmes: int
    unique_students: int
    grade_counts: Mapping[str, int]
    programme_grades: Mapping[str, Mapping[str, int]]
    subjects: Tuple[SubjectSummary, ...]
    ethnicity: Optional[Tuple[EthnicityShare, ...]]
    pass_count: int
    excellent_count: int
    fail_count: int
    withdraw_count: int
    unknown_count: int
    pass_rate: str
    excellence_rate: str
    failure_rate: str
    total_efts: str
    programme: Optional[str] = None
    subject: Optional[str] = None
    records: Tuple[StudentRecord, ...] = field(default=(), compare=False, repr=False)

    @property
    def has_ethnicity_data(self) -> bool:
        return self.ethnicity is not None

    @property
    def top_subjects(self) -> Tuple[SubjectSummary, ...]:
        return self.subjects[:TOP_SUBJECTS]

    def grade_percentage(self, grade: str) -> str:
        return percent(self.grade_counts.get(grade, 0), self.total_records)


# ───────────────────────── Selection ─────────────────────────
def select(records: Iterable[StudentRecord], flt: Optional[ResultFilter] = None) -> List[StudentRecord]:
    if flt is None:
        return list(records)
    return [r for r in records if flt.matches(r)]


def _frame(records: Sequence[StudentRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "programme": [r.programme for r in records],
            "subject": [r.subject for r in records],
            "grade": [r.grade for r in records],
            "efts": [r.efts_factor for r in records],
            "ethnicity": [r.ethnicity.strip() if r.ethnicity else None for r in records],
            "identity": [r.identity for r in records],
        }
    )


def _ordered_counts(pairs: Iterable[Tuple[str, int]]) -> Dict[str, int]:
    counts = {g: int(n) for g, n in pairs}
    return {g: counts[g] for g in order_grades(counts)}


def _nested_counts(sizes: pd.Series) -> Dict[str, Dict[str, int]]:
    """(outer, grade) -> size Series into outer -> grade -> count, outer in first-seen order."""
    nested: Dict[str, List[Tuple[str, int]]] = {}
    for (outer, grade), n in sizes.items():
        nested.setdefault(outer, []).append((grade, n))
    return {outer: _ordered_counts(pairs) for outer, pairs in nested.items()}


def _subject_summaries(df: pd.DataFrame) -> Tuple[SubjectSummary, ...]:
    per_grade = _nested_counts(df.groupby(["subject", "grade"], sort=False).size())
    totals = df.groupby("subject", sort=False).size()
    rows = []
    for name, total in totals.items():
        grades = per_grade[name]
        passed = sum(n for g, n in grades.items() if g in PASS_GRADES)
        rows.append(SubjectSummary(name, int(total), grades, passed, percent(passed, total)))
    # sorted() is stable: equal enrolments keep first-seen order
    return tuple(sorted(rows, key=lambda s: -s.total))


def _ethnicity_shares(df: pd.DataFrame, total: int) -> Optional[Tuple[EthnicityShare, ...]]:
    eth = df["ethnicity"].dropna()
    eth = eth[eth != ""]
    if eth.empty:
        return None
    sizes = eth.groupby(eth, sort=False).size()
    return tuple(EthnicityShare(str(k), int(n), percent(n, total)) for k, n in sizes.items())


# ───────────────────────── Aggregation ─────────────────────────
def aggregate(records: Iterable[StudentRecord], flt: Optional[ResultFilter] = None
              ) -> Union[AggregationResult, _NoData]:
    active = select(records, flt)
    programme = flt.programme if flt else None
    subject = flt.subject if flt else None
    if not active:
        logger.info("No records for programme=%r subject=%r", programme, subject)
        return NO_DATA

    df = _frame(active)
    total = len(df)
    grade = df["grade"]

    pass_count = int(grade.isin(PASS_GRADES).sum())
    excellent_count = int(grade.isin(EXCELLENT_GRADES).sum())
    fail_count = int(grade.isin(FAIL_GRADES).sum())
    unknown_count = int((~grade.isin(GRADE_ORDER)).sum())
    withdraw_count = int(grade.map(is_withdrawal).sum())

    return AggregationResult(
        total_records=total,
        unique_programmes=int(df["programme"].nunique()),
        unique_students=int(df["identity"].nunique()),
        grade_counts=_ordered_counts(df.groupby("grade", sort=False).size().items()),
        programme_grades=_nested_counts(df.groupby(["programme", "grade"], sort=False).size()),
        subjects=_subject_summaries(df),
        ethnicity=_ethnicity_shares(df, total),
        pass_count=pass_count,
        excellent_count=excellent_count,
        fail_count=fail_count,
        withdraw_count=withdraw_count,
        unknown_count=unknown_count,
        pass_rate=percent(pass_count, total),
        excellence_rate=percent(excellent_count, total),
        failure_rate=percent(fail_count, total),
        total_efts=sum_2dp_half_up(df["efts"]),
        programme=programme,
        subject=subject,
        records=tuple(active),
    )


# ───────────────────────── Selector options ─────────────────────────
def programme_options(records: Iterable[StudentRecord]) -> List[Tuple[str, int]]:
    """(programme, record count), most records first; ties keep first-seen order."""
    counts: Dict[str, int] = {}
    for r in records:
        counts[r.programme] = counts.get(r.programme, 0) + 1
    return sorted(counts.items(), key=lambda kv: -kv[1])


def subject_options(records: Iterable[StudentRecord], programme: str) -> List[str]:
    return sorted({r.subject for r in records if r.programme == programme and r.subject})
