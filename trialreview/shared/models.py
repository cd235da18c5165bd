"""Dataclass records for grading rows, finalized reviews and drafts.

A :class:`TrialGradingRecord` is one row of the grading CSV.  Its identity is
the pair ``(nct_id, normalize_text(question_text))``; nothing enforces that the
pair is unique in the source file.  A :class:`ReviewedRecord` copies the row
and adds the reviewer's judgment.  A :class:`DraftEntry` is scratch state for
an unsubmitted edit.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional, Tuple

GRADES: Tuple[str, ...] = ("A", "B", "C", "D", "F")

STATUS_APPROVED = "approved"
STATUS_NEEDS_REVIEW = "needs_review"

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Collapse whitespace runs to a single space and trim.

    >>> normalize_text("Patient X  is\\n50 ")
    'Patient X is 50'
    """
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def identity_key(nct_id: Optional[str], question_text: Optional[str]) -> Tuple[str, str]:
    return (nct_id or "", normalize_text(question_text))


def draft_key(nct_id: Optional[str], question_text: Optional[str]) -> str:
    """Storage key for a draft, ``"<nct_id>::<normalized case text>"``."""
    return f"{nct_id or ''}::{normalize_text(question_text)}"


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass
class TrialGradingRecord:
    question_text: str = ""
    nct_id: str = ""
    # retrieval metadata
    retrieval_score: str = ""
    matching_terms: str = ""
    # trial description
    trial_title: str = ""
    brief_summary: str = ""
    interventions: str = ""
    trial_phase: str = ""
    trial_age_range: str = ""
    diseases_targeted: str = ""
    inclusion_criteria: str = ""
    exclusion_criteria: str = ""
    prior_therapies: str = ""
    gender: str = ""
    # grade under audit
    model_grade: str = ""
    model_reasoning: str = ""
    # second opinion
    judge_assessment: str = ""
    judge_correct_grade: str = ""
    judge_explanation: str = ""
    # patient profile extracted upstream, passed through verbatim
    patient_diseases_targeted: str = ""
    patient_biomarkers: str = ""
    patient_inclusion_criteria: str = ""
    patient_exclusion_criteria: str = ""
    patient_prior_therapies: str = ""
    patient_disease_stage: str = ""
    patient_line_of_therapy: str = ""
    patient_age: str = ""
    patient_age_unit: str = ""
    patient_sex: str = ""
    patient_trial_phase_preference: str = ""
    human_grade: str = ""

    @property
    def identity(self) -> Tuple[str, str]:
        return identity_key(self.nct_id, self.question_text)

    @property
    def case_key(self) -> str:
        return normalize_text(self.question_text)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrialGradingRecord":
        """Build a record from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: _as_str(value) for key, value in data.items() if key in known})


@dataclass
class ReviewedRecord(TrialGradingRecord):
    review_status: str = STATUS_NEEDS_REVIEW
    comments: str = ""
    reviewed_at: str = ""

    @property
    def agrees_with_model(self) -> bool:
        return self.human_grade == self.model_grade

    @classmethod
    def from_record(
        cls,
        record: TrialGradingRecord,
        *,
        human_grade: str,
        comments: str,
        reviewed_at: str,
    ) -> "ReviewedRecord":
        data = {f.name: getattr(record, f.name) for f in fields(TrialGradingRecord)}
        data["human_grade"] = human_grade
        status = STATUS_APPROVED if human_grade == record.model_grade else STATUS_NEEDS_REVIEW
        return cls(**data, review_status=status, comments=comments, reviewed_at=reviewed_at)


@dataclass
class DraftEntry:
    human_grade: Optional[str] = None
    comments: Optional[str] = None

    def merged(self, other: "DraftEntry") -> "DraftEntry":
        """Return a copy with every field ``other`` sets overriding this one."""
        return DraftEntry(
            human_grade=other.human_grade if other.human_grade is not None else self.human_grade,
            comments=other.comments if other.comments is not None else self.comments,
        )

    def to_dict(self) -> Dict[str, str]:
        return {key: value for key, value in asdict(self).items() if value is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DraftEntry":
        grade = data.get("human_grade")
        comments = data.get("comments")
        return cls(
            human_grade=None if grade is None else _as_str(grade),
            comments=None if comments is None else _as_str(comments),
        )
