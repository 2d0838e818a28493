from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Dict

from dotenv import load_dotenv

load_dotenv()

ENV_PREFIX = "INSIGHTS_"


@dataclass(frozen=True)
class InsightConfig:
    """
    Thresholds used by the insight analyzers.

    Passed explicitly into every analyzer call; never mutated.
    """
    moving_average_window: int = 3
    trend_slope_threshold: float = 0.1
    anomaly_z_threshold: float = 2.0
    amount_anomaly_z_threshold: float = 2.5
    smoothing_alpha: float = 0.3
    spend_forecast_periods: int = 3

    concentration_share_pct: float = 50.0
    large_transaction_multiple: float = 3.0

    vendor_deviation_sigmas: float = 2.0
    vendor_growth_min_approved: int = 5
    vendor_growth_approval_ratio: float = 0.8
    vendor_rejection_ratio: float = 0.3
    duplicate_amount_tolerance: float = 10.0
    duplicate_pair_limit: int = 5

    tax_deviation_sigmas: float = 2.0
    standard_vat_rate: float = 15.0
    vat_rate_tolerance: float = 5.0

    bottleneck_high_count: int = 10
    low_approval_rate_pct: float = 70.0

    pattern_min_records: int = 10
    amount_anomaly_min_records: int = 5


DEFAULT_CONFIG = InsightConfig()


def _coerce(name: str, raw: str, kind: type) -> Any:
    try:
        return kind(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name.upper()} must be a valid {kind.__name__}, got {raw!r}") from exc


def load_insight_config(environ: Dict[str, str] | None = None) -> InsightConfig:
    """
    Build an InsightConfig from INSIGHTS_* environment variables.
    Unset or blank variables fall back to the defaults.
    """
    env = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for f in fields(InsightConfig):
        raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
        if raw is None or not raw.strip():
            continue
        kind = type(getattr(DEFAULT_CONFIG, f.name))
        overrides[f.name] = _coerce(f.name, raw, kind)
    return InsightConfig(**overrides)
