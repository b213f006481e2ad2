# charts.py — plotly figures built from ChartData series
# Colours travel with the series records; nothing here looks at raw records.

from typing import Any, Dict, List, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .config import DEFAULT_THEME, ReportTheme
from .grades import order_grades


def _series_grades(rows: List[Dict[str, Any]], fixed) -> List[str]:
    keys = []
    for row in rows:
        keys.extend(k for k in row if k not in fixed)
    return order_grades(keys)


def grade_distribution_bar(rows: List[Dict[str, Any]]) -> go.Figure:
    d = pd.DataFrame(rows)
    fig = px.bar(d, x="grade", y="count", color="grade",
                 color_discrete_map={r["grade"]: r["color"] for r in rows},
                 hover_data=["percentage"])
    fig.update_layout(xaxis_title="", yaxis_title="Students", showlegend=False, height=380)
    return fig


def grade_distribution_pie(rows: List[Dict[str, Any]]) -> go.Figure:
    d = pd.DataFrame(rows)
    fig = px.pie(d, names="grade", values="count", color="grade",
                 color_discrete_map={r["grade"]: r["color"] for r in rows})
    fig.update_traces(textinfo="label+value", sort=False)
    fig.update_layout(height=380)
    return fig


def programme_grades_bar(rows: List[Dict[str, Any]], theme: ReportTheme = DEFAULT_THEME) -> go.Figure:
    """Stacked bar per programme; hover shows the untruncated name."""
    fig = go.Figure()
    for g in _series_grades(rows, {"programme", "full_programme", "total"}):
        fig.add_bar(
            name=g,
            x=[r["programme"] for r in rows],
            y=[r.get(g, 0) for r in rows],
            customdata=[r["full_programme"] for r in rows],
            hovertemplate="%{customdata}<br>" + g + ": %{y}<extra></extra>",
            marker_color=theme.grade_colors.get(g, theme.unknown_color),
        )
    fig.update_layout(barmode="stack", xaxis_tickangle=-45, xaxis_title="", yaxis_title="Records", height=420)
    return fig


def subject_performance_bar(rows: List[Dict[str, Any]], theme: ReportTheme = DEFAULT_THEME) -> go.Figure:
    fig = go.Figure()
    for g in _series_grades(rows, {"subject", "full_subject", "pass_rate", "total_students"}):
        fig.add_bar(
            name=g,
            orientation="h",
            y=[r["subject"] for r in rows],
            x=[r.get(g, 0) for r in rows],
            customdata=[[r["full_subject"], r["pass_rate"]] for r in rows],
            hovertemplate="%{customdata[0]}<br>" + g + ": %{x}<br>Pass rate %{customdata[1]}%<extra></extra>",
            marker_color=theme.grade_colors.get(g, theme.unknown_color),
        )
    fig.update_layout(barmode="stack", yaxis_autorange="reversed", xaxis_title="Students", yaxis_title="",
                      height=max(320, 40 * len(rows)))
    return fig


def ethnicity_pie(rows: Optional[List[Dict[str, Any]]]) -> Optional[go.Figure]:
    if rows is None:
        return None
    d = pd.DataFrame(rows)
    fig = px.pie(d, names="ethnicity", values="count", color="ethnicity",
                 color_discrete_map={r["ethnicity"]: r["color"] for r in rows})
    fig.update_traces(textinfo="label+percent", sort=False)
    fig.update_layout(height=380)
    return fig
