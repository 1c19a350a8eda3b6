"""Tolerances shared by every reconciliation algorithm."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path

import yaml

from finsnap.config import settings
from finsnap.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReconciliationConfig:
    """Runtime configuration for reconciliation tolerances."""

    # Absolute money tolerance: duplicates, exact cheque amounts, balance diffs
    amount_tolerance: Decimal
    # Cheque amount drift (percent of the scheduled amount) still rated MEDIUM
    cheque_medium_percent: Decimal
    # Cheque numbering gap above which a series gets a warning
    series_gap_warning: int
    series_min_date_tolerance_days: int
    series_date_tolerance_ratio: Decimal
    # Adjacent pairs used to establish the expected date interval
    series_sample_intervals: int


DEFAULT_CONFIG = ReconciliationConfig(
    amount_tolerance=Decimal("0.01"),
    cheque_medium_percent=Decimal("5"),
    series_gap_warning=3,
    series_min_date_tolerance_days=3,
    series_date_tolerance_ratio=Decimal("0.2"),
    series_sample_intervals=3,
)

_config_cache: ReconciliationConfig | None = None


def _config_path() -> Path:
    if settings.reconciliation_config_path:
        return Path(settings.reconciliation_config_path)
    return Path(__file__).resolve().parents[2] / "config" / "reconciliation.yaml"


def load_reconciliation_config(force_reload: bool = False) -> ReconciliationConfig:
    """Load reconciliation configuration from YAML if available.

    Environment overrides win over the file. Caches the result to avoid
    repeated disk I/O.
    """
    global _config_cache
    if _config_cache is not None and not force_reload:
        return _config_cache

    config = DEFAULT_CONFIG
    config_path = _config_path()

    if config_path.exists():
        try:
            raw = yaml.safe_load(config_path.read_text()) or {}
            tolerances = raw.get("tolerances", {})
            series = raw.get("series", {})

            config = ReconciliationConfig(
                amount_tolerance=Decimal(str(tolerances.get("amount", config.amount_tolerance))),
                cheque_medium_percent=Decimal(
                    str(tolerances.get("cheque_medium_percent", config.cheque_medium_percent))
                ),
                series_gap_warning=int(series.get("gap_warning", config.series_gap_warning)),
                series_min_date_tolerance_days=int(
                    series.get("min_date_tolerance_days", config.series_min_date_tolerance_days)
                ),
                series_date_tolerance_ratio=Decimal(
                    str(series.get("date_tolerance_ratio", config.series_date_tolerance_ratio))
                ),
                series_sample_intervals=int(
                    series.get("sample_intervals", config.series_sample_intervals)
                ),
            )
        except Exception as e:
            logger.warning(
                "Failed to load reconciliation config - using defaults",
                config_path=str(config_path),
                error=str(e),
                error_type=type(e).__name__,
            )
            config = DEFAULT_CONFIG

    amount_env = os.getenv("RECONCILIATION_AMOUNT_TOLERANCE")
    medium_env = os.getenv("RECONCILIATION_CHEQUE_MEDIUM_PERCENT")
    if amount_env:
        config = replace(config, amount_tolerance=Decimal(amount_env))
    if medium_env:
        config = replace(config, cheque_medium_percent=Decimal(medium_env))

    _config_cache = config
    return config
