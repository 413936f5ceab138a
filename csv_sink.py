"""CSV file sink for resolved affiliations and yearly statistics."""

from __future__ import annotations

import csv
import logging
import os
from pathlib import Path
from typing import Any, Iterable

from models import FinalAffiliation, ResolvedAffiliation, YearlyCount

_DEFAULT_OUTPUT_DIR = "output"

# Env var -> default file name for each output table.
_DEFAULT_FILE_NAMES = {
    "UNRESOLVED_CSV_NAME": "affiliations_imputed_na.csv",
    "FINAL_CSV_NAME": "affiliations_final.csv",
    "WORK_COUNTS_CSV_NAME": "articles_per_year.csv",
    "AUTHOR_COUNTS_CSV_NAME": "authors_per_year.csv",
}

LOGGER = logging.getLogger(__name__)

UNRESOLVED_COLUMNS = [
    "work_id",
    "publication_year",
    "au_display_name",
    "au_orcid",
    "institution_name",
    "institution_final",
    "affiliation_source",
]

FINAL_COLUMNS = [
    "id",
    "publication_year",
    "au_display_name",
    "au_orcid",
    "institution_name",
    "university_press",
    "url",
    "affiliation_source",
]

YEARLY_COLUMNS = ["publication_year", "category", "count"]


def output_dir() -> str:
    return os.environ.get("OUTPUT_DIR", _DEFAULT_OUTPUT_DIR)


def output_path(directory: str | Path, name_var: str) -> Path:
    """Path of one output table; ``name_var`` is the env var overriding its file name."""
    return Path(directory) / os.environ.get(name_var, _DEFAULT_FILE_NAMES[name_var])


def write_unresolved(rows: Iterable[ResolvedAffiliation], path: str | Path) -> int:
    """Write the manual-review CSV. The header is written even when there are no rows."""
    out = [
        {
            "work_id": r.row.work_id,
            "publication_year": r.row.publication_year,
            "au_display_name": r.row.display_name,
            "au_orcid": _blank(r.row.author_id),
            "institution_name": _blank(r.row.institution_name),
            "institution_final": _blank(r.institution_final),
            "affiliation_source": r.provenance,
        }
        for r in rows
    ]
    _write_csv(path, UNRESOLVED_COLUMNS, out)
    LOGGER.info("Wrote %s unresolved rows for manual review to %s", len(out), path)
    return len(out)


def write_final_affiliations(records: Iterable[FinalAffiliation], path: str | Path) -> int:
    out = [
        {
            "id": f.work_id,
            "publication_year": f.publication_year,
            "au_display_name": f.display_name,
            "au_orcid": _blank(f.author_id),
            "institution_name": _blank(f.institution_name),
            "university_press": f.university_press,
            "url": _blank(f.url),
            "affiliation_source": f.provenance,
        }
        for f in records
    ]
    _write_csv(path, FINAL_COLUMNS, out)
    LOGGER.info("Wrote %s final affiliation rows to %s", len(out), path)
    return len(out)


def write_yearly_counts(counts: Iterable[YearlyCount], path: str | Path) -> int:
    out = [
        {"publication_year": c.publication_year, "category": c.category, "count": c.count}
        for c in counts
    ]
    _write_csv(path, YEARLY_COLUMNS, out)
    LOGGER.info("Wrote %s yearly rows to %s", len(out), path)
    return len(out)


def _write_csv(path: str | Path, columns: list[str], rows: list[dict[str, Any]]) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=columns)
        writer.writeheader()
        writer.writerows(rows)


def _blank(value: str | None) -> str:
    return "" if value is None else value
