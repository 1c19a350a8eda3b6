"""Tests for settings helpers and reconciliation config loading."""

from decimal import Decimal

import pytest

from finsnap.config import Settings, parse_comma_list
from finsnap.services import reconciliation_config as config_module
from finsnap.services.reconciliation_config import DEFAULT_CONFIG, load_reconciliation_config


@pytest.fixture(autouse=True)
def reset_config_cache(monkeypatch):
    monkeypatch.setattr(config_module, "_config_cache", None)
    monkeypatch.delenv("RECONCILIATION_AMOUNT_TOLERANCE", raising=False)
    monkeypatch.delenv("RECONCILIATION_CHEQUE_MEDIUM_PERCENT", raising=False)
    yield


def test_parse_comma_list_defaults() -> None:
    assert parse_comma_list(None, ["a"]) == ["a"]


def test_parse_comma_list_accepts_list() -> None:
    assert parse_comma_list(["x", "y"], ["a"]) == ["x", "y"]


def test_parse_comma_list_splits_string() -> None:
    assert parse_comma_list("x, y, ,z", ["a"]) == ["x", "y", "z"]


def test_cheque_keywords_from_env(monkeypatch) -> None:
    monkeypatch.setenv("CHEQUE_KEYWORDS", "chq, cheque")
    assert Settings().cheque_keywords == ["chq", "cheque"]


def test_cheque_keywords_default(monkeypatch) -> None:
    monkeypatch.delenv("CHEQUE_KEYWORDS", raising=False)
    assert "cheque" in Settings(_env_file=None).cheque_keywords


def test_missing_file_uses_defaults(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(config_module.settings, "reconciliation_config_path", str(tmp_path / "absent.yaml"))
    assert load_reconciliation_config(force_reload=True) == DEFAULT_CONFIG


def test_yaml_values_are_loaded(monkeypatch, tmp_path) -> None:
    path = tmp_path / "reconciliation.yaml"
    path.write_text(
        "tolerances:\n"
        "  amount: 0.5\n"
        "  cheque_medium_percent: 2\n"
        "series:\n"
        "  gap_warning: 10\n"
    )
    monkeypatch.setattr(config_module.settings, "reconciliation_config_path", str(path))

    config = load_reconciliation_config(force_reload=True)

    assert config.amount_tolerance == Decimal("0.5")
    assert config.cheque_medium_percent == Decimal("2")
    assert config.series_gap_warning == 10
    assert config.series_sample_intervals == DEFAULT_CONFIG.series_sample_intervals


def test_malformed_yaml_falls_back_to_defaults(monkeypatch, tmp_path) -> None:
    path = tmp_path / "reconciliation.yaml"
    path.write_text("tolerances:\n  amount: [not, a, number\n")
    monkeypatch.setattr(config_module.settings, "reconciliation_config_path", str(path))

    assert load_reconciliation_config(force_reload=True) == DEFAULT_CONFIG


def test_env_overrides_win(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(config_module.settings, "reconciliation_config_path", str(tmp_path / "absent.yaml"))
    monkeypatch.setenv("RECONCILIATION_AMOUNT_TOLERANCE", "0.05")
    monkeypatch.setenv("RECONCILIATION_CHEQUE_MEDIUM_PERCENT", "7.5")

    config = load_reconciliation_config(force_reload=True)

    assert config.amount_tolerance == Decimal("0.05")
    assert config.cheque_medium_percent == Decimal("7.5")


def test_config_is_cached(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(config_module.settings, "reconciliation_config_path", str(tmp_path / "absent.yaml"))
    first = load_reconciliation_config()

    monkeypatch.setenv("RECONCILIATION_AMOUNT_TOLERANCE", "9")

    assert load_reconciliation_config() is first
