# tests/test_formatting.py
from backend.schemas import SummaryStats
from backend.processors.formatting import (
    display_label,
    format_currency,
    format_rounds,
    format_stats,
    empty_message,
    EMPTY_SEARCH_MESSAGE,
    EMPTY_DATASET_MESSAGE,
)


def test_format_currency_drops_trailing_zero_cents():
    assert format_currency(0) == "$0"
    assert format_currency(1800) == "$1,800"
    assert format_currency(1800.0) == "$1,800"
    assert format_currency(1234.5) == "$1,234.5"
    assert format_currency(1234.567) == "$1,234.57"
    assert format_currency(1234.005) == "$1,234.01"
    assert format_currency(0.004) == "$0"
    assert format_currency(1500000) == "$1,500,000"
    assert format_currency(-5) == "-$5"
    assert format_currency(-0.001) == "$0"


def test_format_rounds_one_decimal():
    assert format_rounds(2) == "2.0"
    assert format_rounds(2.46) == "2.5"


def test_format_stats():
    stats = SummaryStats(accepted_count=1200, declined_count=3, avg_final_rate=1799.6, avg_rounds=2.26)
    assert format_stats(stats) == {
        "accepted_count": "1,200",
        "declined_count": "3",
        "avg_final_rate": "$1,799.6",
        "avg_rounds": "2.3",
    }


def test_empty_message():
    assert empty_message(3, 10, "x") is None
    assert empty_message(0, 10, "x") == EMPTY_SEARCH_MESSAGE
    assert empty_message(0, 0, "") == EMPTY_DATASET_MESSAGE
    assert empty_message(0, 0, "x") == EMPTY_SEARCH_MESSAGE


def test_display_label_replaces_first_underscore():
    assert display_label("no_agreement") == "no agreement"
    assert display_label("accepted") == "accepted"
    assert display_label("a_b_c") == "a b_c"
