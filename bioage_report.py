#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Report views - tabular and chart renderings of calculation results.
Every figure is built fresh per call and returned to the caller.
"""

from typing import Any, Dict, List, Optional

import pandas as pd
import plotly.graph_objects as go

from bioage_catalog import FactorCatalog, iter_entries
from bioage_engine import CalculationResult
from bioage_trajectory import TrajectoryResult

RISK_COLOR = "#ff6b6b"
PROTECTIVE_COLOR = "#51cf66"

CATEGORY_LABELS = {
    "basic": "Basic",
    "diet": "Diet",
    "activity": "Activity",
    "lifestyle": "Lifestyle",
    "environment": "Environment",
    "medical": "Medical",
    "mentalHealth": "Mental Health",
    "socialConnection": "Social Connection",
}


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, category)


def factors_frame(result: CalculationResult) -> pd.DataFrame:
    """One row per factor, largest |impact| first."""
    ranked = sorted(result.factors, key=lambda f: abs(f.impact), reverse=True)
    return pd.DataFrame(
        [{
            "Factor": f.name,
            "Category": category_label(f.category),
            "Impact": f.impact,
            "Confidence": f.confidence,
            "Description": f.description,
        } for f in ranked],
        columns=["Factor", "Category", "Impact", "Confidence", "Description"],
    )


def categories_frame(result: CalculationResult) -> pd.DataFrame:
    return pd.DataFrame(
        [{
            "Category": category_label(cat),
            "Raw Score": cs.raw_score,
            "Max Score": cs.max_score,
            "Score": round(cs.percentage_score, 1),
            "Weight": cs.weight,
            "Impact": cs.impact,
            "Factors": len(cs.factors),
        } for cat, cs in result.category_scores.items()],
        columns=["Category", "Raw Score", "Max Score", "Score", "Weight", "Impact", "Factors"],
    )


def trajectory_frame(traj: TrajectoryResult) -> pd.DataFrame:
    """Long-form frame: Year, Chronological Age, plus one column per populated path."""
    df = pd.DataFrame({
        "Year": [p.year for p in traj.no_change],
        "Chronological Age": [p.chronological_age for p in traj.no_change],
        "No Change": [p.biological_age for p in traj.no_change],
    })
    if traj.with_interventions:
        df["With Interventions"] = [p.biological_age for p in traj.with_interventions]
    return df


def catalog_frame(catalog: FactorCatalog) -> pd.DataFrame:
    cols = ["item", "value", "category", "score", "impact", "confidence", "name", "description"]
    return pd.DataFrame(list(iter_entries(catalog)))[cols]


def summary_record(result: CalculationResult, answers: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "Model": result.model_version,
        "Chronological Age": result.chronological_age,
        "Biological Age": result.biological_age,
        "Difference": result.difference,
        "Lower Bound": result.lower_bound,
        "Upper Bound": result.upper_bound,
        "Health Index": result.health_index,
        **{f"Category_{k}": round(v.percentage_score, 1) for k, v in result.category_scores.items()},
    }
    if answers:
        record.update({f"Answer_{k}": ", ".join(v) if isinstance(v, list) else v for k, v in answers.items()})
    return record


def to_csv(result: CalculationResult, answers: Optional[Dict[str, Any]] = None) -> str:
    return pd.DataFrame([summary_record(result, answers)]).to_csv(index=False)


def history_frame(entries: List[Dict[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame(
        [{
            "Timestamp": e["timestamp"],
            "Chronological Age": e["results"]["chronological_age"],
            "Biological Age": e["results"]["biological_age"],
            "Difference": e["results"]["difference"],
            "Model": e["results"].get("model_version", ""),
        } for e in entries],
        columns=["Timestamp", "Chronological Age", "Biological Age", "Difference", "Model"],
    )


# ---------------------------------------------------------------- figures

def factor_impact_figure(result: CalculationResult, top: int = 10) -> go.Figure:
    df = factors_frame(result).head(top).iloc[::-1]
    fig = go.Figure(go.Bar(
        x=df["Impact"],
        y=df["Factor"],
        orientation="h",
        marker_color=[RISK_COLOR if x > 0 else PROTECTIVE_COLOR for x in df["Impact"]],
        text=[f"{x:+.1f}" for x in df["Impact"]],
        textposition="outside",
    ))
    fig.update_layout(
        title="Factor Impact (years)",
        xaxis_title="Years",
        yaxis_title="",
        height=400,
        showlegend=False,
    )
    return fig


def category_scores_figure(result: CalculationResult) -> go.Figure:
    df = categories_frame(result)
    fig = go.Figure(go.Bar(
        x=df["Category"],
        y=df["Score"],
        marker_color=[PROTECTIVE_COLOR if s >= 50 else RISK_COLOR for s in df["Score"]],
        text=[f"{s:.0f}" for s in df["Score"]],
        textposition="outside",
    ))
    fig.update_layout(
        title="Category Scores (50 = neutral)",
        yaxis=dict(range=[0, 105]),
        height=400,
        showlegend=False,
    )
    return fig


def trajectory_figure(traj: TrajectoryResult) -> go.Figure:
    df = trajectory_frame(traj)
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=df["Year"], y=df["Chronological Age"], mode="lines",
                             name="Chronological Age", line=dict(dash="dot", color="#999")))
    fig.add_trace(go.Scatter(x=df["Year"], y=df["No Change"], mode="lines+markers",
                             name="No Change", line=dict(color=RISK_COLOR)))
    if "With Interventions" in df:
        fig.add_trace(go.Scatter(x=df["Year"], y=df["With Interventions"], mode="lines+markers",
                                 name="With Interventions", line=dict(color=PROTECTIVE_COLOR)))
    fig.update_layout(
        title=f"{traj.time_horizon}-Year Biological Age Trajectory",
        xaxis_title="Years from now",
        yaxis_title="Biological age",
        height=400,
    )
    return fig
