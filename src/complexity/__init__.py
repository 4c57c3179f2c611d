"""Complexity scoring: features, structural signals, weighted scores, portfolio normalization and weight previews."""

from .config import (  # noqa: F401
    DEFAULT_COMPLEXITY_CONFIG,
    ComplexityConfig,
    get_action_family_weight,
    get_complexity_rating,
    get_equipment_weight,
    get_location_weight,
    get_signal_weight,
    get_technique_weight,
    load_complexity_config,
    save_complexity_config,
)
from .features import (  # noqa: F401
    canonicalize_technique,
    compute_hot_cold_ratio,
    extract_build_features,
    extract_step_features,
)
from .signals import extract_structural_signals, score_structural_signals  # noqa: F401
from .scoring import score_build, score_build_batch, score_step  # noqa: F401
from .portfolio import (  # noqa: F401
    apply_percentile_ratings,
    compute_percentile_rating,
    compute_portfolio_stats,
    normalize_reports,
    normalize_score,
    score_build_normalized,
    score_portfolio,
)
from .preview import (  # noqa: F401
    compute_weight_impact_preview,
    compute_weight_impact_preview_with_cache,
    prepare_baseline_cache,
)
from .explain import (  # noqa: F401
    format_portfolio_ranking,
    format_portfolio_stats,
    format_preview_summary,
    format_score_report,
    format_score_summary,
    format_step_ledger,
    format_weight_impact_preview,
)
from .frames import (  # noqa: F401
    build_impacts_frame,
    ranking_frame,
    step_features_frame,
    step_ledger_frame,
)

__all__ = [
    "DEFAULT_COMPLEXITY_CONFIG",
    "ComplexityConfig",
    "get_action_family_weight",
    "get_complexity_rating",
    "get_equipment_weight",
    "get_location_weight",
    "get_signal_weight",
    "get_technique_weight",
    "load_complexity_config",
    "save_complexity_config",
    "canonicalize_technique",
    "compute_hot_cold_ratio",
    "extract_build_features",
    "extract_step_features",
    "extract_structural_signals",
    "score_structural_signals",
    "score_build",
    "score_build_batch",
    "score_step",
    "apply_percentile_ratings",
    "compute_percentile_rating",
    "compute_portfolio_stats",
    "normalize_reports",
    "normalize_score",
    "score_build_normalized",
    "score_portfolio",
    "compute_weight_impact_preview",
    "compute_weight_impact_preview_with_cache",
    "prepare_baseline_cache",
    "format_portfolio_ranking",
    "format_portfolio_stats",
    "format_preview_summary",
    "format_score_report",
    "format_score_summary",
    "format_step_ledger",
    "format_weight_impact_preview",
    "build_impacts_frame",
    "ranking_frame",
    "step_features_frame",
    "step_ledger_frame",
]
