from decimal import Decimal

import pytest

from unit_results.aggregate import (
    NO_DATA,
    AggregationResult,
    ResultFilter,
    aggregate,
    percent,
    programme_options,
    select,
    subject_options,
    sum_2dp_half_up,
)
from unit_results.grades import GRADE_ORDER
from unit_results.normalize import normalize_rows


def test_two_record_scenario(make_row):
    batch = normalize_rows([
        make_row("BSc CS", "CS101", "A", 0.125),
        make_row("BSc CS", "CS101", "F", 0.125),
    ])
    result = aggregate(batch.records)
    assert isinstance(result, AggregationResult)
    assert result.total_records == 2
    assert result.pass_rate == "50.0"
    assert result.failure_rate == "50.0"
    assert result.excellence_rate == "50.0"
    assert result.total_efts == "0.25"
    assert result.unique_programmes == 1
    assert result.unique_students == 2  # synthetic CS101-A / CS101-F keys


def test_full_sample(sample_batch):
    result = aggregate(sample_batch.records)
    assert result.total_records == 7
    assert list(result.grade_counts.items()) == [
        ("A", 1), ("A-", 1), ("B+", 1), ("C", 1), ("D", 1), ("F", 1), ("W", 1),
    ]
    assert result.pass_count == 4
    assert result.excellent_count == 2
    assert result.fail_count == 1
    assert result.withdraw_count == 1
    assert result.unknown_count == 1
    assert result.pass_rate == "57.1"
    assert result.excellence_rate == "28.6"
    assert result.failure_rate == "14.3"
    assert result.total_efts == "1.00"
    assert result.unique_programmes == 2
    assert result.unique_students == 5
    assert result.programme is None and result.subject is None


def test_grade_counts_sum_to_total(sample_batch):
    result = aggregate(sample_batch.records)
    assert sum(result.grade_counts.values()) == result.total_records
    for counts in result.programme_grades.values():
        assert list(counts) == [g for g in result.grade_counts if g in counts]
    assert sum(sum(c.values()) for c in result.programme_grades.values()) == result.total_records


def test_partitions_cover_everything_but_the_d_band(sample_batch):
    result = aggregate(sample_batch.records)
    d_band = sum(result.grade_counts.get(g, 0) for g in ("D+", "D"))
    total = (Decimal(result.pass_rate) + Decimal(result.failure_rate)
             + Decimal(percent(d_band, result.total_records))
             + Decimal(percent(result.unknown_count, result.total_records)))
    assert abs(total - 100) <= Decimal("0.2")


def test_aggregate_is_idempotent(sample_batch):
    assert aggregate(sample_batch.records) == aggregate(sample_batch.records)


def test_filter_composition(sample_batch):
    by_programme = select(sample_batch.records, ResultFilter(programme="BSc CS"))
    narrowed = aggregate(by_programme, ResultFilter(subject="Data Structures"))
    direct = aggregate(sample_batch.records, ResultFilter(programme="BSc CS", subject="Data Structures"))
    assert narrowed.grade_counts == direct.grade_counts
    assert narrowed.pass_rate == direct.pass_rate == "50.0"
    assert direct.failure_rate == "0.0"
    assert direct.total_records == 2
    assert direct.programme == "BSc CS" and direct.subject == "Data Structures"


def test_programme_filter(sample_batch):
    result = aggregate(sample_batch.records, ResultFilter(programme="BSc CS"))
    assert result.total_records == 4
    assert result.pass_rate == "50.0"
    assert result.excellence_rate == "25.0"
    assert result.failure_rate == "25.0"
    assert result.total_efts == "0.50"
    assert result.unique_students == 3
    assert list(result.programme_grades) == ["BSc CS"]
    assert len(result.records) == 4


def test_grade_order_ignores_encounter_order(make_row):
    rows = [make_row("P", "U1", g) for g in ("F", "INC", "C", "A+", "B-", "W", "A+")]
    result = aggregate(normalize_rows(rows).records)
    assert list(result.grade_counts) == ["A+", "B-", "C", "F", "INC", "W"]
    assert list(result.subjects[0].grade_counts) == ["A+", "B-", "C", "F", "INC", "W"]
    assert list(result.programme_grades["P"]) == ["A+", "B-", "C", "F", "INC", "W"]


@pytest.mark.parametrize("records,flt", [
    ([], None),
    (None, ResultFilter(programme="Nope")),
    (None, ResultFilter(programme="BSc CS", subject="World History")),
])
def test_no_data_sentinel(sample_batch, records, flt):
    result = aggregate(sample_batch.records if records is None else records, flt)
    assert result is NO_DATA
    assert not result
    assert repr(result) == "NO_DATA"


def test_unknown_grades_count_in_totals_only(make_row):
    rows = [make_row("P", "U1", "INC"), make_row("P", "U1", "A")]
    result = aggregate(normalize_rows(rows).records)
    assert result.total_records == 2
    assert result.unknown_count == 1
    assert result.pass_rate == "50.0"
    assert result.failure_rate == "0.0"
    assert result.grade_percentage("INC") == "50.0"


def test_malformed_efts_is_zero(make_row):
    rows = [make_row("P", "U1", "A", "oops"), make_row("P", "U1", "B", "0.5")]
    assert aggregate(normalize_rows(rows).records).total_efts == "0.50"


@pytest.mark.parametrize("values,expected", [
    (["1e30"], "1" + "0" * 30 + ".00"),
    (["1e300", "1e300"], "2" + "0" * 300 + ".00"),
    (["1e308", "1e308"], "2" + "0" * 308 + ".00"),
    (["1e308", "0.125"], "1" + "0" * 308 + ".13"),
])
def test_huge_efts_totals_stay_exact(make_row, values, expected):
    rows = [make_row("P", f"U{i}", "A", v) for i, v in enumerate(values)]
    assert aggregate(normalize_rows(rows).records).total_efts == expected


def test_missing_unit_code_row_is_excluded(make_row):
    rows = [make_row("P", "U1", "A", 0.5), make_row("P", "", "F", 0.5)]
    result = aggregate(normalize_rows(rows).records)
    assert result.total_records == 1
    assert result.pass_rate == "100.0"
    assert result.total_efts == "0.50"


def test_ethnicity_absent(make_row):
    result = aggregate(normalize_rows([make_row("P", "U1", "A")]).records)
    assert result.has_ethnicity_data is False
    assert result.ethnicity is None


def test_ethnicity_shares(sample_batch):
    result = aggregate(sample_batch.records)
    assert result.has_ethnicity_data
    assert [(e.ethnicity, e.count, e.percentage) for e in result.ethnicity] == [
        ("Maori", 2, "28.6"), ("Pakeha", 1, "14.3"), ("Samoan", 1, "14.3"),
    ]


def test_subjects_ranked_by_enrolment_with_stable_ties(sample_batch):
    result = aggregate(sample_batch.records)
    assert [(s.name, s.total) for s in result.subjects] == [
        ("Intro to Programming", 2), ("Data Structures", 2), ("World History", 2), ("HI200", 1),
    ]
    intro = result.subjects[0]
    assert intro.pass_count == 1 and intro.pass_rate == "50.0"
    assert result.subjects[2].pass_rate == "50.0"  # A- passes, W does not


def test_top_subjects_truncates_to_ten(make_row):
    rows = []
    for i in range(12):
        rows.extend(make_row("P", f"U{i:02d}", "A") for _ in range(i + 1))
    result = aggregate(normalize_rows(rows).records)
    assert len(result.subjects) == 12
    assert [s.name for s in result.top_subjects] == [f"U{i:02d}" for i in range(11, 1, -1)]


def test_unique_students_use_identity_fallback(make_row):
    rows = [
        make_row("P", "U1", "A", **{"Student ID": "s1"}),
        make_row("P", "U2", "B", **{"Student ID": "s1"}),
        make_row("P", "U3", "C"),
        make_row("P", "U3", "C"),
    ]
    assert aggregate(normalize_rows(rows).records).unique_students == 2


@pytest.mark.parametrize("count,total,expected", [
    (1, 8, "12.5"), (1, 16, "6.3"), (1, 3, "33.3"), (2, 3, "66.7"), (0, 5, "0.0"), (5, 5, "100.0"),
])
def test_percent_rounds_half_up(count, total, expected):
    assert percent(count, total) == expected


@pytest.mark.parametrize("values,expected", [
    ([0.125], "0.13"), ([0.005], "0.01"), ([0.1, 0.2], "0.30"), ([], "0.00"), ([1e30], "1" + "0" * 30 + ".00"),
])
def test_sum_2dp_half_up(values, expected):
    assert sum_2dp_half_up(values) == expected


def test_programme_options(sample_batch, make_row):
    assert programme_options(sample_batch.records) == [("BSc CS", 4), ("BA History", 3)]
    tied = normalize_rows([make_row("Z", "U", "A"), make_row("A", "U", "A")]).records
    assert programme_options(tied) == [("Z", 1), ("A", 1)]


def test_subject_options(sample_batch):
    assert subject_options(sample_batch.records, "BA History") == ["HI200", "World History"]
    assert subject_options(sample_batch.records, "BSc CS") == ["Data Structures", "Intro to Programming"]
    assert subject_options(sample_batch.records, "Nope") == []


def test_grade_order_constant_used_for_canonical_grades():
    assert set(GRADE_ORDER) == {"A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D+", "D", "F"}
