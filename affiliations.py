"""Affiliation extraction, dominant-affiliation resolution and imputation.

Author identity is the display name string. Two people who publish under the
same display name are merged, and ``author_id`` is carried through the rows
but never used as a key.
"""

from __future__ import annotations

import logging
import os
import re
from collections import Counter, defaultdict
from typing import Any, Iterable

from errors import MalformedInputError
from models import (
    IMPUTED_STABLE_AUTHOR,
    OBSERVED,
    UNRESOLVED,
    AffiliationRow,
    AuthorDominantAffiliation,
    ResolvedAffiliation,
    WorkRecord,
)

_DEFAULT_STABLE_SHARE_THRESHOLD = 0.9

LOGGER = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def squish(value: Any) -> str | None:
    """Trim and collapse internal whitespace; empty or non-string values become None."""
    if not isinstance(value, str):
        return None
    squished = _WHITESPACE_RE.sub(" ", value).strip()
    return squished or None


def validate_work(work: WorkRecord) -> None:
    """Raise MalformedInputError if the work lacks an id or publication year."""
    if not isinstance(work.work_id, str) or not work.work_id.strip():
        raise MalformedInputError(f"Work is missing an id: {work!r}", record=work)
    year = work.publication_year
    if isinstance(year, bool) or not isinstance(year, int):
        raise MalformedInputError(
            f"Work {work.work_id} has no valid publication_year: {year!r}", record=work
        )


def extract_affiliations(works: Iterable[WorkRecord]) -> list[AffiliationRow]:
    """Flatten works into one row per author-institution-work.

    This is a pure reshape: nothing is filtered, and rows keep the order of
    the works and of the authors within each work.
    """
    rows: list[AffiliationRow] = []
    for work in works:
        for author in work.authors:
            rows.append(
                AffiliationRow(
                    work_id=work.work_id,
                    publication_year=work.publication_year,
                    display_name=author.display_name,
                    author_id=author.author_id,
                    institution_name=squish(author.institution_name),
                )
            )
    return rows


def resolve_dominant_affiliations(rows: Iterable[AffiliationRow]) -> list[AuthorDominantAffiliation]:
    """Return each author's most frequent institution and its share.

    Rows without an institution are ignored, so authors never observed at
    any institution do not appear. When several institutions tie for the
    highest count, the alphabetically first institution name wins. The result
    is sorted by display name.
    """
    counts: Counter[tuple[str, str]] = Counter(
        (row.display_name, row.institution_name)
        for row in rows
        if row.institution_name is not None
    )

    by_author: dict[str, dict[str, int]] = defaultdict(dict)
    for (author, institution), n in counts.items():
        by_author[author][institution] = n

    dominant: list[AuthorDominantAffiliation] = []
    for author in sorted(by_author):
        institutions = by_author[author]
        total = sum(institutions.values())
        # highest count first, then alphabetical institution name
        institution, n = min(institutions.items(), key=lambda item: (-item[1], item[0]))
        dominant.append(
            AuthorDominantAffiliation(
                display_name=author,
                institution_name=institution,
                count=n,
                share=n / total,
            )
        )

    LOGGER.info("Resolved dominant affiliations for %s authors", len(dominant))
    return dominant


def stable_authors(
    dominant: Iterable[AuthorDominantAffiliation],
    threshold: float | None = None,
) -> dict[str, AuthorDominantAffiliation]:
    """Index authors whose dominant share is at least ``threshold`` by display name."""
    if threshold is None:
        threshold = float(os.environ.get("STABLE_SHARE_THRESHOLD", _DEFAULT_STABLE_SHARE_THRESHOLD))
    return {entry.display_name: entry for entry in dominant if entry.share >= threshold}


def impute_affiliations(
    rows: Iterable[AffiliationRow],
    stable: dict[str, AuthorDominantAffiliation],
) -> list[ResolvedAffiliation]:
    """Attach a final institution and provenance tag to every row.

    Observed institutions are kept as-is. Missing ones are filled from the
    author's stable dominant affiliation, or left as None and tagged
    ``unresolved``. Output has exactly one row per input row, in order.
    """
    resolved: list[ResolvedAffiliation] = []
    for row in rows:
        if row.institution_name is not None:
            resolved.append(ResolvedAffiliation(row, row.institution_name, OBSERVED))
            continue

        match = stable.get(row.display_name)
        if match is not None:
            resolved.append(ResolvedAffiliation(row, match.institution_name, IMPUTED_STABLE_AUTHOR))
        else:
            resolved.append(ResolvedAffiliation(row, None, UNRESOLVED))

    imputed = sum(1 for r in resolved if r.provenance == IMPUTED_STABLE_AUTHOR)
    LOGGER.info(
        "Imputation: rows=%s imputed=%s unresolved=%s",
        len(resolved),
        imputed,
        sum(1 for r in resolved if r.provenance == UNRESOLVED),
    )
    return resolved


def unresolved_rows(resolved: Iterable[ResolvedAffiliation]) -> list[ResolvedAffiliation]:
    """Rows still lacking an institution, for manual review."""
    return [r for r in resolved if r.provenance == UNRESOLVED]
