"""Reviewer workflow over loaded records, drafts and finalized reviews."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .config import ReviewConfig
from .csv_parser import load_csv, parse_csv
from .drafts import DraftStore
from .errors import MissingGradeError, RecordLoadError, TrialReviewError
from .formatting import normalize_grade
from .grouping import CaseIndex
from .reviews import ReviewStore
from .shared.models import DraftEntry, ReviewedRecord, TrialGradingRecord, normalize_text
from .storage import KeyValueStorage, build_storage

LOGGER = logging.getLogger(__name__)

STATE_NOT_READY = "not_ready"
STATE_READY = "ready"
STATE_ERROR = "error"

_UNSET = object()


@dataclass(frozen=True)
class SubmitOutcome:
    review: ReviewedRecord
    case_complete: bool


class ReviewSession:
    """One reviewer's pass over a grading file.

    The session owns the cursor (selected case, trial within the case) and
    routes edits to the draft cache and submissions to the review store.  It
    stays ``not_ready`` until records are loaded; a failed load leaves it in
    ``error`` with no records.
    """

    def __init__(
        self,
        reviews: ReviewStore,
        drafts: DraftStore,
        *,
        default_to_judge_grade: bool = True,
    ) -> None:
        self.reviews = reviews
        self.drafts = drafts
        self.default_to_judge_grade = default_to_judge_grade
        self.state = STATE_NOT_READY
        self.error: Optional[str] = None
        self.records: List[TrialGradingRecord] = []
        self.index = CaseIndex()
        self.case_position = 0
        self.trial_position = 0

    @classmethod
    def from_config(cls, config: ReviewConfig, storage: Optional[KeyValueStorage] = None) -> "ReviewSession":
        backend = storage if storage is not None else build_storage(config)
        session = cls(
            ReviewStore(backend, key=config.reviews_key),
            DraftStore(backend, key=config.drafts_key),
            default_to_judge_grade=config.default_to_judge_grade,
        )
        session.restore()
        return session

    def restore(self) -> None:
        """Reload persisted reviews and drafts; failures leave the stores empty."""
        self.reviews.load()
        self.drafts.load()

    # ---------------------------------------------------------------- loading
    def load_file(self, path: Path | str, raise_on_error: bool = False) -> bool:
        try:
            records = load_csv(path)
        except RecordLoadError as exc:
            return self._fail(exc, raise_on_error)
        self._accept(records)
        return True

    def load_text(self, text: str, raise_on_error: bool = False) -> bool:
        try:
            records = parse_csv(text)
        except (TypeError, AttributeError) as exc:
            return self._fail(RecordLoadError(f"Failed to load CSV data: {exc}"), raise_on_error)
        self._accept(records)
        return True

    def _accept(self, records: List[TrialGradingRecord]) -> None:
        self.records = records
        self.index = CaseIndex.build(records)
        self.case_position = 0
        self.trial_position = 0
        self.state = STATE_READY
        self.error = None

    def _fail(self, exc: RecordLoadError, raise_on_error: bool) -> bool:
        LOGGER.error("Error loading grading records: %s", exc)
        self.records = []
        self.index = CaseIndex()
        self.state = STATE_ERROR
        self.error = str(exc)
        if raise_on_error:
            raise exc
        return False

    @property
    def ready(self) -> bool:
        return self.state == STATE_READY

    def _require_ready(self) -> None:
        if not self.ready:
            raise TrialReviewError(self.error or "Grading records are not loaded yet")

    # ------------------------------------------------------------- navigation
    @property
    def cases(self) -> List[str]:
        return list(self.index.cases)

    @property
    def selected_case(self) -> Optional[str]:
        if not self.index.cases:
            return None
        return self.index.case_at(self.case_position)

    def select_case(self, case: int | str) -> str:
        self._require_ready()
        if isinstance(case, int):
            if not 0 <= case < len(self.index.cases):
                raise TrialReviewError(f"No case at position {case}")
            position = case
        else:
            if case not in self.index:
                raise TrialReviewError("Unknown case")
            position = self.index.cases.index(normalize_text(case))
        self.case_position = position
        self.trial_position = 0
        return self.index.case_at(position)

    @property
    def current_trials(self) -> List[TrialGradingRecord]:
        case = self.selected_case
        return self.index.records_for(case) if case is not None else []

    @property
    def current_trial(self) -> Optional[TrialGradingRecord]:
        trials = self.current_trials
        if 0 <= self.trial_position < len(trials):
            return trials[self.trial_position]
        return None

    @property
    def position(self) -> Tuple[int, int]:
        return (self.case_position, self.trial_position)

    def next_trial(self) -> Optional[TrialGradingRecord]:
        self.trial_position = min(self.trial_position + 1, max(len(self.current_trials) - 1, 0))
        return self.current_trial

    def previous_trial(self) -> Optional[TrialGradingRecord]:
        self.trial_position = max(self.trial_position - 1, 0)
        return self.current_trial

    def go_to_trial(self, position: int) -> Optional[TrialGradingRecord]:
        trials = self.current_trials
        if not 0 <= position < len(trials):
            raise TrialReviewError(f"No trial at position {position}")
        self.trial_position = position
        return self.current_trial

    # ---------------------------------------------------------------- editing
    def initial_grade(self, record: TrialGradingRecord) -> str:
        draft = self.drafts.get(record.nct_id, record.question_text)
        if draft is not None and draft.human_grade:
            return draft.human_grade
        if self.default_to_judge_grade and record.judge_correct_grade:
            return record.judge_correct_grade
        return ""

    def initial_comments(self, record: TrialGradingRecord) -> str:
        draft = self.drafts.get(record.nct_id, record.question_text)
        if draft is not None and draft.comments is not None:
            return draft.comments
        return ""

    def _require_trial(self) -> TrialGradingRecord:
        self._require_ready()
        record = self.current_trial
        if record is None:
            raise TrialReviewError("No trial is selected")
        return record

    def edit(self, human_grade: object = _UNSET, comments: object = _UNSET) -> DraftEntry:
        record = self._require_trial()
        kwargs = {}
        if human_grade is not _UNSET:
            kwargs["human_grade"] = human_grade
        if comments is not _UNSET:
            kwargs["comments"] = comments
        return self.drafts.set(record.nct_id, record.question_text, **kwargs)

    def submit(self, human_grade: Optional[str] = None, comments: Optional[str] = None) -> SubmitOutcome:
        """Finalize the current trial's review and advance.

        Missing arguments fall back to the values the reviewer would see
        pre-filled (draft, then judge grade).  Raises
        :class:`~trialreview.errors.MissingGradeError` without touching any
        state when no valid grade is available.
        """
        record = self._require_trial()
        grade = normalize_grade(human_grade if human_grade is not None else self.initial_grade(record))
        if not grade:
            raise MissingGradeError()
        note = comments if comments is not None else self.initial_comments(record)

        review = self.reviews.upsert(record, grade, note)
        self.drafts.delete(record.nct_id, record.question_text)

        case_complete = self.trial_position >= len(self.current_trials) - 1
        if not case_complete:
            self.trial_position += 1
        return SubmitOutcome(review=review, case_complete=case_complete)

    def undo(self) -> bool:
        record = self._require_trial()
        return self.reviews.remove(record.nct_id, record.question_text)

    # --------------------------------------------------------------- progress
    def case_progress(self, case: Optional[str] = None) -> Tuple[int, int]:
        """``(reviewed, total)`` trial counts for a case (default: selected case)."""
        target = case if case is not None else self.selected_case
        trials = self.index.records_for(target) if target is not None else []
        reviewed = sum(1 for record in trials if self.reviews.is_reviewed(record.nct_id, record.question_text))
        return reviewed, len(trials)
