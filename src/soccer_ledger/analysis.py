"""Tabular views of actions for charts and session summaries."""

from typing import Iterable

import pandas as pd

from .filters import query_chart
from .models import Action


ACTION_COLUMNS = [
    "id", "timestamp", "count", "kind", "is_match",
    "opponent", "player_id", "team_id", "match_id",
]


def actions_frame(actions: Iterable[Action]) -> pd.DataFrame:
    """One row per action, oldest first, with a parsed ``timestamp`` column."""
    rows = [
        {
            "id": a.id,
            "timestamp": a.timestamp,
            "count": a.count,
            "kind": a.kind.value,
            "is_match": a.is_match,
            "opponent": a.opponent,
            "player_id": a.player_id,
            "team_id": a.team_id,
            "match_id": a.match_id,
        }
        for a in query_chart(actions)
    ]
    df = pd.DataFrame(rows, columns=ACTION_COLUMNS)
    df["timestamp"] = pd.to_datetime(df["timestamp"], format="ISO8601")
    return df


def chart_series(actions: Iterable[Action]) -> pd.DataFrame:
    """Progress chart points: position, ``MM/dd`` label and count per action."""
    df = actions_frame(actions)
    df = df[~df["kind"].isin(["PLAYER_IN", "PLAYER_OUT"])].reset_index(drop=True)
    return pd.DataFrame({
        "x": range(len(df)),
        "label": df["timestamp"].dt.strftime("%m/%d"),
        "count": df["count"],
    })


def session_totals(actions: Iterable[Action]) -> pd.DataFrame:
    """Sum counts per day, session type and opponent, oldest day first.

    Substitution markers are excluded.
    """
    df = actions_frame(actions)
    df = df[~df["kind"].isin(["PLAYER_IN", "PLAYER_OUT"])]
    if df.empty:
        return pd.DataFrame(columns=["date", "is_match", "opponent", "count"])
    df = df.assign(date=df["timestamp"].dt.date)
    totals = (
        df.groupby(["date", "is_match", "opponent"], as_index=False)["count"]
        .sum()
        .sort_values(["date", "opponent"])
        .reset_index(drop=True)
    )
    return totals
