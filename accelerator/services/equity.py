"""
Cap-table consistency rules for the Phase 3 equity breakdown.

All thresholds are in percentage points. Every rule is evaluated
independently; each failure yields one YELLOW flag.
"""

from typing import Iterable, List

from accelerator.models.enums import EquityCategory, FlagType
from accelerator.schemas.application import EquityRow
from accelerator.schemas.flagging import Flag

FIELD = "equityBreakdown"

MIN_FOUNDER_TOTAL = 70.0
MIN_SOLO_FOUNDER_TOTAL = 80.0
MAX_INVESTORS = 5
MAX_TWO_FOUNDER_GAP = 20.0
MAX_ADJACENT_FOUNDER_GAP = 15.0
SUM_TOLERANCE = 0.1

# Summary rows, not stakeholders
SUMMARY_CATEGORIES = {EquityCategory.TOTAL, EquityCategory.GRAND_TOTAL}


def _flag(message: str) -> Flag:
    return Flag(type=FlagType.YELLOW, field=FIELD, message=message)


def check_equity(rows: Iterable[EquityRow]) -> List[Flag]:
    rows = list(rows)
    if not rows:
        return [_flag("No equity breakdown provided")]

    founders = [r for r in rows if r.category == EquityCategory.FOUNDER]
    investor_count = sum(1 for r in rows if r.category == EquityCategory.INVESTOR)
    founder_total = sum(r.percentage for r in founders)
    grand_total = sum(r.percentage for r in rows if r.category not in SUMMARY_CATEGORIES)

    flags = []

    if founder_total < MIN_FOUNDER_TOTAL:
        flags.append(_flag(
            f"Founders hold {founder_total:.1f}% combined, below the {MIN_FOUNDER_TOTAL:.0f}% floor"
        ))

    if len(founders) == 1 and founder_total < MIN_SOLO_FOUNDER_TOTAL:
        flags.append(_flag(
            f"Solo founder holds {founder_total:.1f}%, below the {MIN_SOLO_FOUNDER_TOTAL:.0f}% expected for a single founder"
        ))

    if investor_count > MAX_INVESTORS:
        flags.append(_flag(
            f"{investor_count} investors on the cap table (more than {MAX_INVESTORS})"
        ))

    if len(founders) == 2:
        high, low = sorted((r.percentage for r in founders), reverse=True)
        gap = high - low
        if gap > MAX_TWO_FOUNDER_GAP:
            flags.append(_flag(
                f"Uneven founder split: {high:.1f}% vs {low:.1f}% ({gap:.1f} point gap)"
            ))
    elif len(founders) >= 3:
        ordered = sorted((r.percentage for r in founders), reverse=True)
        for high, low in zip(ordered, ordered[1:]):
            gap = high - low
            if gap > MAX_ADJACENT_FOUNDER_GAP:
                flags.append(_flag(
                    f"Uneven founder split: {high:.1f}% vs {low:.1f}% ({gap:.1f} point gap between founders)"
                ))
                break

    if abs(grand_total - 100.0) > SUM_TOLERANCE:
        flags.append(_flag(f"Equity percentages add up to {grand_total:.1f}%, not 100%"))

    return flags
