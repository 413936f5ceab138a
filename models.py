"""Shared typed models for the affiliation pipeline."""

from __future__ import annotations

from dataclasses import dataclass

OBSERVED = "observed"
IMPUTED_STABLE_AUTHOR = "imputed_stable_author"
UNRESOLVED = "unresolved"


@dataclass(frozen=True, slots=True)
class AuthorAffiliation:
    """One author-institution pairing on a single work."""

    display_name: str
    author_id: str | None = None
    institution_name: str | None = None


@dataclass(frozen=True, slots=True)
class WorkRecord:
    """Normalized journal work used across ingestion and resolution."""

    work_id: str
    publication_year: int
    is_oa: bool
    authors: tuple[AuthorAffiliation, ...] = ()
    title: str = ""
    work_type: str = ""


@dataclass(frozen=True, slots=True)
class AffiliationRow:
    """Flat author-per-work row produced by the extractor."""

    work_id: str
    publication_year: int
    display_name: str
    author_id: str | None
    institution_name: str | None


@dataclass(frozen=True, slots=True)
class AuthorDominantAffiliation:
    display_name: str
    institution_name: str
    count: int
    share: float


@dataclass(frozen=True, slots=True)
class ResolvedAffiliation:
    """An extracted row plus its final institution and provenance tag."""

    row: AffiliationRow
    institution_final: str | None
    provenance: str  # observed | imputed_stable_author | unresolved


@dataclass(frozen=True, slots=True)
class AuthorityEntry:
    institution_name: str
    university_press: bool
    url: str | None = None


@dataclass(frozen=True, slots=True)
class FinalAffiliation:
    """Per (work, author) record after authority matching."""

    work_id: str
    publication_year: int
    display_name: str
    author_id: str | None
    institution_name: str | None
    university_press: bool
    url: str | None
    provenance: str


@dataclass(frozen=True, slots=True)
class YearlyCount:
    """Long-format (year, category, count) row for charting."""

    publication_year: int
    category: str
    count: int
