import pytest

from unit_results.normalize import normalize_rows


def row(programme, unit, grade, efts=None, desc="", **extra):
    r = {"course desc": programme, "unit code": unit, "unit offer description": desc, "cuor result code": grade}
    if efts is not None:
        r["cuor efts factor"] = efts
    r.update(extra)
    return r


@pytest.fixture
def make_row():
    return row


@pytest.fixture
def sample_rows():
    return [
        row("BSc CS", "CS101", "A", 0.125, "Intro to Programming", **{"Student ID": "s1", "Ethnicity": "Maori"}),
        row("BSc CS", "CS101", "F", 0.125, "Intro to Programming", **{"Student ID": "s2", "Ethnicity": "Pakeha"}),
        row("BSc CS", "CS102", "B+", 0.125, "Data Structures", **{"Student ID": "s1", "Ethnicity": "Maori"}),
        row("BSc CS", "CS102", "D", 0.125, "Data Structures", **{"Student ID": "s3"}),
        row("BA History", "HI100", "a-", "0.25", "World History", **{"Student ID": "s4", "Ethnicity": " Samoan "}),
        row("BA History", "HI100", "W", "n/a", "World History", **{"Student ID": "s5"}),
        row("BA History", "HI200", "C", 0.25, "", **{"Student ID": "s4"}),
    ]


@pytest.fixture
def sample_batch(sample_rows):
    return normalize_rows(sample_rows)
