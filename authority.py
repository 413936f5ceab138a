"""University-press authority table: loading, validation and matching."""

from __future__ import annotations

import csv
import logging
import os
from pathlib import Path
from typing import Iterable

from affiliations import squish
from errors import AuthorityConfigError, DuplicateAuthorityEntryError
from models import AuthorityEntry, FinalAffiliation, ResolvedAffiliation

_DEFAULT_DUPLICATE_POLICY = "error"

# Column names used by the curated affiliations_press.csv sheet.
NAME_COLUMN = "name"
PRESS_COLUMN = "university press"
URL_COLUMN = "url"

_DUPLICATE_POLICIES = ("error", "first")

LOGGER = logging.getLogger(__name__)


def load_authority_csv(path: str | Path) -> list[AuthorityEntry]:
    """Read the authority sheet and normalize it into AuthorityEntry rows.

    The press flag is a Yes/No token; only "yes" (any case) counts as True.
    Rows with a blank institution name are skipped.
    """
    entries: list[AuthorityEntry] = []
    with Path(path).open(newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        missing = {NAME_COLUMN, PRESS_COLUMN} - set(reader.fieldnames or [])
        if missing:
            raise AuthorityConfigError(f"Authority CSV {path} is missing columns: {sorted(missing)}")

        for line_no, row in enumerate(reader, start=2):
            name = squish(row.get(NAME_COLUMN))
            if name is None:
                LOGGER.warning("authority: skipping row %s with blank institution name", line_no)
                continue
            entries.append(
                AuthorityEntry(
                    institution_name=name,
                    university_press=(row.get(PRESS_COLUMN) or "").strip().lower() == "yes",
                    url=(row.get(URL_COLUMN) or "").strip() or None,
                )
            )

    LOGGER.info("authority: loaded %s entries from %s", len(entries), path)
    return entries


def build_authority_index(
    entries: Iterable[AuthorityEntry],
    on_duplicate: str | None = None,
) -> dict[str, AuthorityEntry]:
    """Key entries by squished institution name.

    on_duplicate:
        "error" — raise DuplicateAuthorityEntryError on the first repeat.
        "first" — keep the first-seen entry and log the dropped repeat.
    """
    policy = on_duplicate or os.environ.get("AUTHORITY_DUPLICATE_POLICY", _DEFAULT_DUPLICATE_POLICY)
    if policy not in _DUPLICATE_POLICIES:
        raise AuthorityConfigError(f"Unknown duplicate policy {policy!r}; expected one of {_DUPLICATE_POLICIES}")

    index: dict[str, AuthorityEntry] = {}
    seen_at: dict[str, int] = {}
    for position, entry in enumerate(entries, start=1):
        key = squish(entry.institution_name)
        if key is None:
            continue
        if key in index:
            if policy == "error":
                raise DuplicateAuthorityEntryError(key, seen_at[key], position)
            LOGGER.warning(
                "authority: duplicate entry %r at position %s ignored (first seen at %s)",
                key,
                position,
                seen_at[key],
            )
            continue
        index[key] = entry
        seen_at[key] = position
    return index


def match_authority(
    resolved: Iterable[ResolvedAffiliation],
    index: dict[str, AuthorityEntry],
) -> list[FinalAffiliation]:
    """Left-join resolved rows onto the authority index.

    Unmatched and missing institutions get university_press=False and no URL.
    The output has exactly one record per input row.
    """
    final: list[FinalAffiliation] = []
    for item in resolved:
        institution = squish(item.institution_final)
        entry = index.get(institution) if institution is not None else None
        final.append(
            FinalAffiliation(
                work_id=item.row.work_id,
                publication_year=item.row.publication_year,
                display_name=item.row.display_name,
                author_id=item.row.author_id,
                institution_name=institution,
                university_press=entry.university_press if entry else False,
                url=entry.url if entry else None,
                provenance=item.provenance,
            )
        )

    LOGGER.info(
        "authority: matched=%s university_press=%s of %s rows",
        sum(1 for f in final if f.institution_name in index),
        sum(1 for f in final if f.university_press),
        len(final),
    )
    return final
