"""Tabular (pandas) views of scoring results."""

from __future__ import annotations
from typing import List

import pandas as pd

from complexity.types import BuildFeatures, PortfolioScoreResult, StepEffort, WeightImpactPreview


def step_features_frame(features: BuildFeatures) -> pd.DataFrame:
    """One row per step in scoring order."""
    cols = [
        "step_id",
        "station_side",
        "station_id",
        "action_family",
        "technique_id",
        "equipment_id",
        "duration_seconds",
        "is_active",
        "input_count",
        "output_count",
    ]
    rows = [sf.model_dump(include=set(cols)) for sf in features.step_features]
    return pd.DataFrame(rows, columns=cols)


def step_ledger_frame(step_efforts: List[StepEffort]) -> pd.DataFrame:
    cols = [
        "step_id",
        "location_score",
        "technique_score",
        "equipment_score",
        "action_family_score",
        "total_effort",
    ]
    rows = [e.model_dump(include=set(cols)) for e in step_efforts]
    return pd.DataFrame(rows, columns=cols)


def ranking_frame(result: PortfolioScoreResult) -> pd.DataFrame:
    """Ranking with a 1-based ``rank`` column, highest raw score first."""
    cols = ["rank", "build_id", "raw_score", "normalized_score", "rating"]
    rows = [
        {"rank": i, **entry.model_dump()}
        for i, entry in enumerate(result.ranking, start=1)
    ]
    return pd.DataFrame(rows, columns=cols)


def build_impacts_frame(preview: WeightImpactPreview) -> pd.DataFrame:
    cols = [
        "build_id",
        "baseline_raw",
        "preview_raw",
        "delta_raw",
        "baseline_rating",
        "preview_rating",
        "rating_changed",
        "baseline_rank",
        "preview_rank",
        "rank_shift",
    ]
    rows = [
        {
            "build_id": b.build_id,
            "baseline_raw": b.baseline.raw_score,
            "preview_raw": b.preview.raw_score,
            "delta_raw": b.delta.raw_score,
            "baseline_rating": b.baseline.rating,
            "preview_rating": b.preview.rating,
            "rating_changed": b.delta.rating_changed,
            "baseline_rank": b.baseline.rank,
            "preview_rank": b.preview.rank,
            "rank_shift": b.delta.rank_shift,
        }
        for b in preview.build_impacts
    ]
    return pd.DataFrame(rows, columns=cols)
