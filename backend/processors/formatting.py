# backend/processors/formatting.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from backend.schemas import SummaryStats

EMPTY_SEARCH_MESSAGE = "No logs found matching your search."
EMPTY_DATASET_MESSAGE = "No logs available."


def display_label(value: str) -> str:
    """Display form of an enum value: first underscore becomes a space."""
    return value.replace("_", " ", 1)


def format_currency(amount: float) -> str:
    """US dollars, up to two decimals, trailing zeros dropped: 1234.5 -> '$1,234.5', 1800 -> '$1,800'."""
    cents = Decimal(str(abs(amount))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    whole, frac = f"{cents:,.2f}".split(".")
    frac = frac.rstrip("0")
    sign = "-" if amount < 0 and cents else ""
    return f"{sign}${whole}" + (f".{frac}" if frac else "")


def format_rounds(value: float) -> str:
    return f"{value:.1f}"


def format_stats(stats: SummaryStats) -> Dict[str, Any]:
    return {
        "accepted_count": f"{stats.accepted_count:,}",
        "declined_count": f"{stats.declined_count:,}",
        "avg_final_rate": format_currency(stats.avg_final_rate),
        "avg_rounds": format_rounds(stats.avg_rounds),
    }


def empty_message(result_count: int, total_count: int, search_term: Optional[str]) -> Optional[str]:
    if result_count > 0:
        return None
    if search_term:
        return EMPTY_SEARCH_MESSAGE
    if total_count == 0:
        return EMPTY_DATASET_MESSAGE
    return None
