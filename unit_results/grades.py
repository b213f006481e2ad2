# grades.py — grade vocabulary, rate partitions and ordering helpers

from typing import Iterable, List

# ───────────────────────── Vocabulary ─────────────────────────
GRADE_ORDER = ("A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D+", "D", "F")

# D+/D sit outside every partition; they count in totals only.
PASS_GRADES = frozenset(("A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-"))
EXCELLENT_GRADES = frozenset(("A+", "A", "A-"))
FAIL_GRADES = frozenset(("F",))

# Not canonical grades: they land in the unknown bucket but are tallied for the summary sheet.
WITHDRAW_GRADES = frozenset(("W", "WD"))

GRADE_TIERS = {
    "excellent": ("A+", "A", "A-"),
    "good": ("B+", "B", "B-"),
    "satisfactory": ("C+", "C", "C-"),
    "poor": ("D+", "D", "F"),
}

_RANK = {g: i for i, g in enumerate(GRADE_ORDER)}


# ───────────────────────── Helpers ─────────────────────────
def canonical_grade(raw) -> str:
    """Upper-case match against GRADE_ORDER; anything else passes through stripped."""
    s = "" if raw is None else str(raw).strip()
    up = s.upper()
    return up if up in _RANK else s


def is_withdrawal(grade: str) -> bool:
    return str(grade).strip().upper() in WITHDRAW_GRADES


def order_grades(grades: Iterable[str]) -> List[str]:
    """Distinct labels: canonical ones in GRADE_ORDER, then unknowns in first-seen order."""
    known, unknown, seen = [], [], set()
    for g in grades:
        if g in seen:
            continue
        seen.add(g)
        (known if g in _RANK else unknown).append(g)
    known.sort(key=_RANK.__getitem__)
    return known + unknown


def grade_tier(grade: str) -> str:
    up = str(grade).strip().upper()
    for tier, members in GRADE_TIERS.items():
        if up in members:
            return tier
    return "other"
