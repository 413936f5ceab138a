"""Single-pass affiliation resolution run: extract, resolve, impute, match, aggregate."""

from __future__ import annotations

import logging
from typing import Iterable, NamedTuple

from affiliations import (
    extract_affiliations,
    impute_affiliations,
    resolve_dominant_affiliations,
    stable_authors,
    unresolved_rows,
    validate_work,
)
from authority import build_authority_index, match_authority
from models import (
    AuthorDominantAffiliation,
    AuthorityEntry,
    FinalAffiliation,
    ResolvedAffiliation,
    WorkRecord,
    YearlyCount,
)
from stats import yearly_author_counts, yearly_work_counts

LOGGER = logging.getLogger(__name__)


class PipelineResult(NamedTuple):
    dominant: list[AuthorDominantAffiliation]
    unresolved: list[ResolvedAffiliation]
    final: list[FinalAffiliation]
    work_counts: list[YearlyCount]
    author_counts: list[YearlyCount]


def run_pipeline(
    works: Iterable[WorkRecord],
    authority: Iterable[AuthorityEntry],
    threshold: float | None = None,
    on_duplicate: str | None = None,
) -> PipelineResult:
    """Run every stage on fresh inputs and return all derived tables.

    Inputs are validated up front, so a malformed work or a duplicate
    authority entry aborts the run before any table is built.
    """
    works = list(works)
    for work in works:
        validate_work(work)
    index = build_authority_index(authority, on_duplicate=on_duplicate)

    if not works:
        LOGGER.warning("Pipeline received no works")

    rows = extract_affiliations(works)
    LOGGER.info("Extracted %s author rows from %s works", len(rows), len(works))

    dominant = resolve_dominant_affiliations(rows)
    stable = stable_authors(dominant, threshold=threshold)
    LOGGER.info("Stable authors: %s of %s", len(stable), len(dominant))

    resolved = impute_affiliations(rows, stable)
    final = match_authority(resolved, index)

    return PipelineResult(
        dominant=dominant,
        unresolved=unresolved_rows(resolved),
        final=final,
        work_counts=yearly_work_counts(works),
        author_counts=yearly_author_counts(final),
    )
