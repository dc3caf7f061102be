from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def bar_chart(series: List[Dict[str, Any]], value_field: str, *, title: str = "", currency: bool = False) -> Dict[str, Any]:
    df = pd.DataFrame(series, columns=["name", value_field])
    fmt = "$,.0f" if currency else ",.2f"
    hover = alt.selection_point(fields=["name"], on="mouseover", empty="all")
    chart = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("name:N", title=None, sort=None, axis=alt.Axis(labelAngle=-30)),
            y=alt.Y(f"{value_field}:Q", title=title or value_field, axis=alt.Axis(format="$~s" if currency else "~s", gridDash=[4, 4], domain=False, ticks=False)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.5)),
            tooltip=["name", alt.Tooltip(f"{value_field}:Q", format=fmt)],
        )
        .add_params(hover)
        .properties(height=260)
    )
    return to_vega_spec(chart)


def pie_chart(series: List[Dict[str, Any]], value_field: str) -> Dict[str, Any]:
    df = pd.DataFrame(series, columns=["name", value_field])
    chart = (
        alt.Chart(df)
        .mark_arc(innerRadius=50)
        .encode(
            theta=alt.Theta(f"{value_field}:Q"),
            color=alt.Color("name:N", title=None, sort=None),
            tooltip=["name", alt.Tooltip(f"{value_field}:Q", format=",")],
        )
        .properties(height=260)
    )
    return to_vega_spec(chart)


def trend_chart(points: List[Dict[str, Any]]) -> Dict[str, Any]:
    df = pd.DataFrame(points, columns=["period", "month", "revenue", "claims"])
    chart = (
        alt.Chart(df)
        .mark_line(point={"filled": True, "size": 60})
        .encode(
            x=alt.X("month:O", title="Month", sort=None, axis=alt.Axis(grid=False)),
            y=alt.Y("revenue:Q", axis=alt.Axis(format="$~s", gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=["month", alt.Tooltip("revenue:Q", format="$,.0f"), alt.Tooltip("claims:Q", format=",")],
        )
        .properties(height=260)
    )
    return to_vega_spec(chart)
