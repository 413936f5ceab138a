"""Pre-filter selecting the journal works that enter affiliation resolution."""

from __future__ import annotations

import logging
from typing import Iterable

from models import WorkRecord

_KEPT_TYPES: frozenset[str] = frozenset({
    "article",
    "letter",
    "review",
})

# Translated-abstract digests indexed as standalone works.
_EXCLUDED_TITLE_PREFIXES: tuple[str, ...] = (
    "Spanish Abstracts",
    "Chinese Abstracts",
)


def is_relevant_work(work: WorkRecord) -> bool:
    """Return True if the work is a research item with at least one author.

    - False — type outside article/letter/review, no authors, or an
      abstracts-digest title.
    - True  — everything else.
    """
    if work.work_type not in _KEPT_TYPES:
        return False
    if not work.authors:
        return False
    return not work.title.startswith(_EXCLUDED_TITLE_PREFIXES)


def filter_works(works: Iterable[WorkRecord]) -> list[WorkRecord]:
    works = list(works)
    kept = [w for w in works if is_relevant_work(w)]
    logging.info(
        "Work filter: total=%s kept=%s dropped=%s",
        len(works),
        len(kept),
        len(works) - len(kept),
    )
    return kept
