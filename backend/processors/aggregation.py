# backend/processors/aggregation.py
"""
Aggregation engine for the negotiation-log dashboard.

Functions (all pure, no I/O):
- filter_by_search_term(records, term) -> records whose mc_number/load_id/outcome/sentiment contain term
- compute_summary_stats(records) -> SummaryStats
- compute_outcome_distribution(records) -> [DistributionEntry]
- compute_sentiment_distribution(records) -> [DistributionEntry]
- compute_daily_rate_trend(records, window=7) -> [TrendPoint]
- build_dashboard(records, term) -> Dashboard

Inputs:
- records: sequence of decoded LogRecord (see backend.validator.decode_records)

Summary stats and charts are always computed over the full dataset; only the
record table honours the search term.
"""

import os
from types import MappingProxyType
from collections import Counter
from typing import List, Mapping, Optional, Sequence

import pandas as pd

from backend.schemas import (
    Dashboard,
    DashboardCharts,
    DistributionEntry,
    LogRecord,
    SummaryStats,
    TrendPoint,
)
from backend.processors.formatting import display_label

TREND_WINDOW_DAYS = int(os.getenv("TREND_WINDOW_DAYS", "7"))

SEARCH_FIELDS = ("mc_number", "load_id", "outcome", "sentiment")

PALETTE: Mapping[str, str] = MappingProxyType({
    "green": "#10b981",
    "red": "#ef4444",
    "amber": "#f59e0b",
    "gray": "#6b7280",
})

OUTCOME_COLORS: Mapping[str, str] = MappingProxyType({
    "accepted": "green",
    "declined": "red",
    "no_agreement": "amber",
})

SENTIMENT_COLORS: Mapping[str, str] = MappingProxyType({
    "positive": "green",
    "neutral": "gray",
    "negative": "red",
})


def _share(count: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(count * 100.0 / total + 0.5)


def filter_by_search_term(records: Sequence[LogRecord], term: Optional[str]) -> List[LogRecord]:
    if not term:
        return list(records)
    needle = term.lower()
    return [
        r for r in records
        if any(needle in str(getattr(r, f)).lower() for f in SEARCH_FIELDS)
    ]


def compute_summary_stats(records: Sequence[LogRecord]) -> SummaryStats:
    n = len(records)
    if n == 0:
        return SummaryStats()

    accepted = sum(1 for r in records if r.outcome == "accepted")
    declined = sum(1 for r in records if r.outcome == "declined")
    avg_final_rate = sum(r.final_rate for r in records) / n
    avg_rounds = sum(r.rounds for r in records) / n

    return SummaryStats(
        accepted_count=accepted,
        declined_count=declined,
        avg_final_rate=avg_final_rate,
        avg_rounds=avg_rounds,
    )


def _distribution(records: Sequence[LogRecord], field: str,
                  colors: Mapping[str, str]) -> List[DistributionEntry]:
    # Counter keeps first-occurrence order
    counts = Counter(getattr(r, field) for r in records)
    total = len(records)
    out: List[DistributionEntry] = []
    for key, count in counts.items():
        color_key = colors.get(key)
        out.append(DistributionEntry(
            label=display_label(key),
            count=count,
            color_key=color_key,
            color=PALETTE.get(color_key) if color_key else None,
            share=_share(count, total),
        ))
    return out


def compute_outcome_distribution(records: Sequence[LogRecord]) -> List[DistributionEntry]:
    return _distribution(records, "outcome", OUTCOME_COLORS)


def compute_sentiment_distribution(records: Sequence[LogRecord]) -> List[DistributionEntry]:
    return _distribution(records, "sentiment", SENTIMENT_COLORS)


def compute_daily_rate_trend(records: Sequence[LogRecord], window: Optional[int] = None) -> List[TrendPoint]:
    """
    Average final_rate per UTC calendar date, ascending, limited to the
    `window` most recent dates that have data (not the last `window` calendar days).
    """
    if window is None:
        window = TREND_WINDOW_DAYS
    if not records or window <= 0:
        return []

    df = pd.DataFrame({
        "date": [r.created_date for r in records],
        "final_rate": [r.final_rate for r in records],
    })
    # YYYY-MM-DD strings sort chronologically
    daily = df.groupby("date", sort=True)["final_rate"].mean().sort_index().tail(window)

    return [TrendPoint(date=str(d), avg_rate=float(v)) for d, v in daily.items()]


def build_dashboard(records: Sequence[LogRecord], term: Optional[str] = None,
                    trend_window: Optional[int] = None) -> Dashboard:
    """Run the whole pipeline once over a freshly fetched dataset."""
    return Dashboard(
        logs=filter_by_search_term(records, term),
        stats=compute_summary_stats(records),
        charts=DashboardCharts(
            outcome=compute_outcome_distribution(records),
            sentiment=compute_sentiment_distribution(records),
            trend=compute_daily_rate_trend(records, window=trend_window),
        ),
    )
