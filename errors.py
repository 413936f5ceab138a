"""Exceptions raised when pipeline inputs fail validation."""

from __future__ import annotations


class AffiliationPipelineError(RuntimeError):
    """Base class for input faults that abort a resolution run."""


class MalformedInputError(AffiliationPipelineError):
    """A work record or works file cannot be parsed (e.g. missing id or publication year)."""

    def __init__(self, message: str, record: object = None) -> None:
        super().__init__(message)
        self.record = record


class AuthorityConfigError(AffiliationPipelineError):
    """The authority table is unreadable or lacks required columns."""


class DuplicateAuthorityEntryError(AffiliationPipelineError):
    """The authority table lists the same normalized institution twice.

    Positions count loaded authority entries (1-based), not CSV lines.
    """

    def __init__(self, institution_name: str, first_entry: int, duplicate_entry: int) -> None:
        super().__init__(
            f"Duplicate authority entry for institution={institution_name!r} "
            f"(entries {first_entry} and {duplicate_entry})"
        )
        self.institution_name = institution_name
        self.first_entry = first_entry
        self.duplicate_entry = duplicate_entry
