from datetime import datetime, timedelta, timezone

import pytest

from tradewizard.services import (calculate_performance_metrics,
                                  calculate_recommendation_pnl)

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


def test_long_yes_profit():
    pnl = calculate_recommendation_pnl(
        "LONG_YES", (0.40, 0.42), (0.58, 0.62), 0.51, NOW - timedelta(days=10), now=NOW
    )
    assert pnl.entry_price == pytest.approx(0.41)
    assert pnl.target_price == pytest.approx(0.60)
    assert pnl.potential_return == pytest.approx(0.10)
    assert pnl.potential_return_percent == pytest.approx(0.10 / 0.41 * 100)
    assert pnl.would_have_profit
    assert pnl.days_held == 10
    assert pnl.annualized_return == pytest.approx(pnl.potential_return_percent * 36.5)


def test_long_no_uses_no_side_prices():
    pnl = calculate_recommendation_pnl(
        "LONG_NO", (0.60, 0.62), (0.38, 0.42), 0.70, NOW - timedelta(days=1), now=NOW
    )
    assert pnl.entry_price == pytest.approx(0.39)
    assert pnl.current_price == pytest.approx(0.30)
    assert pnl.target_price == pytest.approx(0.60)
    assert not pnl.would_have_profit


def test_no_trade_is_flat():
    pnl = calculate_recommendation_pnl("NO_TRADE", (0.5, 0.5), (0.5, 0.5), 0.9, NOW, now=NOW)
    assert pnl.potential_return == 0
    assert not pnl.would_have_profit
    assert pnl.annualized_return == 0


def test_same_day_has_no_annualized_return():
    pnl = calculate_recommendation_pnl("LONG_YES", (0.4, 0.4), (0.6, 0.6), 0.5, NOW, now=NOW)
    assert pnl.days_held == 0
    assert pnl.annualized_return == 0


def test_accepts_naive_and_iso_timestamps():
    naive = (NOW - timedelta(days=3)).replace(tzinfo=None)
    assert calculate_recommendation_pnl("LONG_YES", (0.4, 0.4), (0.6, 0.6), 0.5, naive, now=NOW).days_held == 3
    assert (
        calculate_recommendation_pnl(
            "LONG_YES", (0.4, 0.4), (0.6, 0.6), 0.5, "2026-04-29T00:00:00Z", now=NOW
        ).days_held
        == 2
    )


def test_metrics():
    results = [
        calculate_recommendation_pnl("LONG_YES", (0.4, 0.4), (0.6, 0.6), 0.5, NOW - timedelta(days=2), now=NOW),
        calculate_recommendation_pnl("LONG_YES", (0.5, 0.5), (0.6, 0.6), 0.4, NOW - timedelta(days=4), now=NOW),
    ]
    metrics = calculate_performance_metrics(results)
    assert metrics.total_recommendations == 2
    assert metrics.profitable_recommendations == 1
    assert metrics.win_rate == 50
    assert metrics.best_return == pytest.approx(25)
    assert metrics.worst_return == pytest.approx(-20)
    assert metrics.average_return == pytest.approx(2.5)
    assert metrics.average_days_held == 3


def test_metrics_empty():
    assert calculate_performance_metrics([]).total_recommendations == 0
