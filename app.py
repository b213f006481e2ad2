# app.py — Student Result Analysis dashboard
# Upload .xlsx/.xls/.csv -> normalize -> aggregate by programme/subject -> charts -> Excel report

import logging

import pandas as pd
import streamlit as st

from unit_results import charts
from unit_results.aggregate import NO_DATA, ResultFilter, aggregate, programme_options, subject_options
from unit_results.config import ACCEPTED_TYPES, APP_TITLE, APP_VER, DEFAULT_THEME, configure_logging
from unit_results.grades import grade_tier
from unit_results.io_excel import XLSX_MIME, SpreadsheetReadError, build_excel_report, read_raw_first_sheet
from unit_results.normalize import HEADER_ALIASES, normalize_frame
from unit_results.report import build_chart_data, build_report_sheets, raw_frame, report_file_name

configure_logging()
logger = logging.getLogger("unit_results.app")

# ───────────────────────── App config ─────────────────────────
st.set_page_config(page_title=APP_TITLE, page_icon="📊", layout="wide")


# ───────────────────────── Caching wrappers ─────────────────────────
@st.cache_data(show_spinner=False)
def cached_read_first_sheet(file_bytes: bytes, filename: str):
    from io import BytesIO

    bio = BytesIO(file_bytes)
    bio.name = filename
    return read_raw_first_sheet(bio)


@st.cache_data(show_spinner=False)
def cached_normalize(df_raw: pd.DataFrame):
    return normalize_frame(df_raw)


def _plot(fig):
    if fig is not None:
        st.plotly_chart(fig, use_container_width=True)


# ───────────────────────── UI ─────────────────────────
st.markdown(f"### {APP_TITLE}  \n*{APP_VER}*  \n*(Excel files: only the **first sheet** is processed)*")

uploaded = st.file_uploader("Upload results (.xlsx / .xls / .csv)", type=ACCEPTED_TYPES)
if not uploaded:
    st.info("Upload your file to begin. Expected columns:")
    st.dataframe(
        pd.DataFrame(
            [(k, v[0]) for k, v in HEADER_ALIASES.items()], columns=["Field", "Column header"]
        ),
        use_container_width=True, hide_index=True,
    )
    st.stop()

try:
    with st.status("Reading file (first sheet only)…", expanded=False) as s:
        df_raw, meta_in = cached_read_first_sheet(uploaded.getvalue(), uploaded.name)
        s.update(label=f"File read ✓  (sheet: {meta_in.get('sheet_name') or '—'})", state="complete")
except SpreadsheetReadError as e:
    logger.warning("Upload rejected: %s", e)
    st.error(f"Error processing file: {e}\n\nPlease check that the file has the expected column names.")
    st.stop()

batch = cached_normalize(df_raw)
if not batch.records:
    st.error("No valid student records found (course desc, unit code and cuor result code are required).")
    st.stop()
st.success(f"Loaded {len(batch.records):,} valid student records"
           + (f" ({batch.rejected_count:,} rows skipped)." if batch.rejected_count else "."))

# ───────────────────────── Filters ─────────────────────────
st.sidebar.header("Filters")
programmes = programme_options(batch.records)
labels = {"All Programmes": None}
labels.update({f"{p} ({n})": p for p, n in programmes})
programme = labels[st.sidebar.selectbox("Programme", list(labels))]

subject = None
if programme is not None:
    subjects = subject_options(batch.records, programme)
    pick = st.sidebar.selectbox("Subject", ["All Subjects"] + subjects)
    subject = None if pick == "All Subjects" else pick
    st.sidebar.caption(f"{len(subjects)} subjects available")

result = aggregate(batch.records, ResultFilter(programme=programme, subject=subject))
if result is NO_DATA:
    st.info("No data available for this selection.")
    st.stop()

series = build_chart_data(result, DEFAULT_THEME)

# ───────────────────────── KPIs ─────────────────────────
k1, k2, k3, k4, k5, k6 = st.columns(6)
with k1: st.metric("Records in Programme" if programme else "Total Records", f"{result.total_records:,}")
with k2: st.metric("Total EFTS", result.total_efts)
with k3: st.metric("Pass Rate", f"{result.pass_rate}%")
with k4: st.metric("Excellence Rate", f"{result.excellence_rate}%")
with k5: st.metric("Failure Rate", f"{result.failure_rate}%")
with k6: st.metric("Unique Students", f"{result.unique_students:,}")

st.divider()

# ───────────────────────── Tabs ─────────────────────────
tab1, tab2, tab3 = st.tabs(["Overview", "Programme Analysis", "Raw Data"])

with tab1:
    cA, cB = st.columns(2)
    with cA:
        if programme is None:
            st.subheader("Programme-wise Grade Distribution")
            _plot(charts.programme_grades_bar(series.programme_grades, DEFAULT_THEME))
        else:
            st.subheader("Grade Distribution")
            _plot(charts.grade_distribution_bar(series.grade_distribution))
    with cB:
        st.subheader(f"Grade Distribution - {programme}" if programme else "Overall Grade Distribution")
        _plot(charts.grade_distribution_pie(series.grade_distribution))
    st.subheader("Grade Distribution Summary")
    st.dataframe(
        pd.DataFrame(series.grade_distribution)[["grade", "count", "percentage"]],
        use_container_width=True, hide_index=True,
    )

with tab2:
    cA, cB = st.columns(2)
    with cA:
        st.subheader("Subject-wise Performance (Top 10 by Enrollment)")
        _plot(charts.subject_performance_bar(series.subject_performance, DEFAULT_THEME))
    with cB:
        if result.has_ethnicity_data:
            st.subheader("Ethnicity Distribution")
            _plot(charts.ethnicity_pie(series.ethnicity))
        else:
            st.subheader("Grade Performance Overview")
            st.caption("Ethnicity data not available in uploaded file. Include an 'ethnicity' column for demographic analysis.")
            for label, rate in (("Pass Rate", result.pass_rate),
                                ("Excellence Rate", result.excellence_rate),
                                ("Failure Rate", result.failure_rate)):
                st.progress(min(int(float(rate)), 100), text=f"{label}: {rate}%")

with tab3:
    raw = raw_frame(result)
    raw.insert(0, "Grade Tier", [grade_tier(r.grade) for r in result.records])
    st.dataframe(raw, use_container_width=True, hide_index=True)

# ───────────────────────── Download Excel ─────────────────────────
st.divider()
st.subheader("Download generated Excel report")
sheets = build_report_sheets(result, blank_count=batch.blank_grade_count(programme, subject))
st.download_button(
    "Download Excel (multi-sheet)",
    data=build_excel_report(sheets),
    file_name=report_file_name(programme),
    mime=XLSX_MIME,
)

st.caption(f"{APP_TITLE} • {APP_VER}")
