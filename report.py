"""Post-run reporting: chart-ready figure table from the yearly statistics.

One output file is produced on every analyze run:

  fig1_articles_authors_per_year.csv — one row per publication year with
                         works split by open access, the two author series,
                         and the author series rescaled onto the works axis
                         so a dual-axis chart can be drawn directly.

Rendering and styling the chart is left to whatever tool reads the table.
"""

from __future__ import annotations

import csv
import logging
import os
from pathlib import Path
from typing import Iterable

from models import YearlyCount
from stats import ALL_AUTHORS, OPEN_ACCESS_NO, OPEN_ACCESS_YES, UNIPRESS_AUTHORS

LOGGER = logging.getLogger(__name__)

_DEFAULT_FIGURE_CSV_NAME = "fig1_articles_authors_per_year.csv"

FIGURE_COLUMNS = [
    "publication_year",
    "works_open_access",
    "works_closed",
    "works_total",
    "all_authors",
    "unipress_authors",
    # Author series multiplied by the scale factor (secondary axis)
    "all_authors_scaled",
    "unipress_authors_scaled",
]


def figure_path(directory: str | Path) -> Path:
    return Path(directory) / os.environ.get("FIGURE_CSV_NAME", _DEFAULT_FIGURE_CSV_NAME)


def dual_axis_scale_factor(
    work_counts: Iterable[YearlyCount],
    author_counts: Iterable[YearlyCount],
) -> float:
    """Ratio mapping author counts onto the works axis.

    Largest single (year, open-access) bar segment divided by the largest
    yearly "All authors" count. Falls back to 1.0 when either side is empty.
    """
    max_works = max((c.count for c in work_counts), default=0)
    max_authors = max((c.count for c in author_counts if c.category == ALL_AUTHORS), default=0)
    if max_works == 0 or max_authors == 0:
        return 1.0
    return max_works / max_authors


def build_figure_rows(
    work_counts: list[YearlyCount],
    author_counts: list[YearlyCount],
    scale: float | None = None,
) -> list[dict]:
    if scale is None:
        scale = dual_axis_scale_factor(work_counts, author_counts)

    works: dict[int, dict[str, int]] = {}
    for c in work_counts:
        works.setdefault(c.publication_year, {})[c.category] = c.count
    authors: dict[int, dict[str, int]] = {}
    for c in author_counts:
        authors.setdefault(c.publication_year, {})[c.category] = c.count

    rows = []
    for year in sorted(set(works) | set(authors)):
        w = works.get(year, {})
        a = authors.get(year, {})
        open_n = w.get(OPEN_ACCESS_YES, 0)
        closed_n = w.get(OPEN_ACCESS_NO, 0)
        all_n = a.get(ALL_AUTHORS, 0)
        press_n = a.get(UNIPRESS_AUTHORS, 0)
        rows.append({
            "publication_year": year,
            "works_open_access": open_n,
            "works_closed": closed_n,
            "works_total": open_n + closed_n,
            "all_authors": all_n,
            "unipress_authors": press_n,
            "all_authors_scaled": round(all_n * scale, 4),
            "unipress_authors_scaled": round(press_n * scale, 4),
        })
    return rows


def generate_figure_table(
    path: str | Path,
    work_counts: list[YearlyCount],
    author_counts: list[YearlyCount],
) -> list[dict]:
    """Write the figure table and return its rows."""
    scale = dual_axis_scale_factor(work_counts, author_counts)
    rows = build_figure_rows(work_counts, author_counts, scale=scale)
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=FIGURE_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)

    LOGGER.info(
        "report: %d years, scale_factor=%.4f → %s",
        len(rows),
        scale,
        target,
    )
    return rows
