"""Per-year publication and authorship counts."""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Iterable

from models import FinalAffiliation, WorkRecord, YearlyCount

OPEN_ACCESS_YES = "Yes"
OPEN_ACCESS_NO = "No"
ALL_AUTHORS = "All authors"
UNIPRESS_AUTHORS = "Authors with university press"


def yearly_work_counts(works: Iterable[WorkRecord]) -> list[YearlyCount]:
    """Count works per (publication year, open-access category).

    Categories with no works in a year are omitted.
    """
    counts = Counter(
        (work.publication_year, OPEN_ACCESS_YES if work.is_oa else OPEN_ACCESS_NO)
        for work in works
    )
    return [
        YearlyCount(publication_year=year, category=category, count=n)
        for (year, category), n in sorted(counts.items())
    ]


def yearly_author_counts(final: Iterable[FinalAffiliation]) -> list[YearlyCount]:
    """Count distinct author display names per year, overall and university-press only."""
    all_names: dict[int, set[str]] = defaultdict(set)
    press_names: dict[int, set[str]] = defaultdict(set)
    for record in final:
        all_names[record.publication_year].add(record.display_name)
        if record.university_press:
            press_names[record.publication_year].add(record.display_name)

    rows: list[YearlyCount] = []
    for year in sorted(all_names):
        rows.append(YearlyCount(year, ALL_AUTHORS, len(all_names[year])))
        rows.append(YearlyCount(year, UNIPRESS_AUTHORS, len(press_names[year])))
    return rows
