"""Exceptions surfaced to reviewers.

Only two failure kinds ever reach the user: a record file that cannot be
loaded, and a submit attempt without a usable human grade.  Everything else
(malformed rows, storage faults) degrades silently.
"""
from __future__ import annotations


class TrialReviewError(Exception):
    """Base class for errors raised by the review toolkit."""


class RecordLoadError(TrialReviewError):
    """Raised when the grading records cannot be loaded at all."""


class CsvLoadError(RecordLoadError):
    """Raised when a grading CSV cannot be read or decoded."""


class MissingGradeError(TrialReviewError, ValueError):
    """Raised when a review is submitted without a valid human grade."""

    default_message = "Please provide a human grade before submitting."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
