"""Finalized human reviews, reconciled by (trial, case) identity."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from .metrics import agreement_rate, model_human_pairs
from .shared.models import (
    STATUS_APPROVED,
    STATUS_NEEDS_REVIEW,
    ReviewedRecord,
    TrialGradingRecord,
    identity_key,
    normalize_text,
)
from .storage import KeyValueStorage, StorageResult

LOGGER = logging.getLogger(__name__)

DEFAULT_REVIEWS_KEY = "reviewedTrials"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ReviewStats:
    total: int
    agreed: int
    approved: int
    needs_review: int
    # nan when there are no reviews
    agreement_rate: float


class ReviewStore:
    """At most one :class:`ReviewedRecord` per ``(nct_id, normalized case)``.

    Every mutation is written through to ``storage``.  A failed write is
    logged and reported by the returned :class:`StorageResult` of
    :meth:`save`; the in-memory list stays the source of truth for the
    session either way.
    """

    def __init__(self, storage: KeyValueStorage, key: str = DEFAULT_REVIEWS_KEY) -> None:
        self.storage = storage
        self.key = key
        self._reviews: List[ReviewedRecord] = []
        self.last_result: Optional[StorageResult] = None

    # ------------------------------------------------------------------ state
    def load(self) -> StorageResult:
        result = self.storage.read(self.key)
        self._reviews = []
        if result.ok and result.found:
            payload = result.value
            if not isinstance(payload, list):
                LOGGER.warning("Ignoring stored reviews: expected a list, got %s", type(payload).__name__)
                result = StorageResult(ok=False, key=self.key, error="stored reviews are not a list")
            else:
                for item in payload:
                    if isinstance(item, dict):
                        self._restore(ReviewedRecord.from_dict(item))
        self.last_result = result
        return result

    def _restore(self, review: ReviewedRecord) -> None:
        self._drop(review.nct_id, review.question_text)
        self._reviews.append(review)

    def save(self) -> StorageResult:
        self.last_result = self.storage.write(self.key, [review.to_dict() for review in self._reviews])
        return self.last_result

    # -------------------------------------------------------------- mutations
    def upsert(
        self,
        record: TrialGradingRecord,
        human_grade: str,
        comments: str = "",
        reviewed_at: Optional[str] = None,
    ) -> ReviewedRecord:
        review = ReviewedRecord.from_record(
            record,
            human_grade=human_grade,
            comments=comments or "",
            reviewed_at=reviewed_at or utc_timestamp(),
        )
        self._drop(record.nct_id, record.question_text)
        self._reviews.append(review)
        self.save()
        LOGGER.info(
            "Recorded review for %s (%s)",
            review.nct_id,
            review.review_status,
            extra={"nct_id": review.nct_id, "human_grade": human_grade},
        )
        return review

    def remove(self, nct_id: Optional[str], case_text: Optional[str]) -> bool:
        """Delete the review for this identity; returns ``False`` if there was none."""
        removed = self._drop(nct_id, case_text)
        if removed:
            self.save()
        return removed

    def _drop(self, nct_id: Optional[str], case_text: Optional[str]) -> bool:
        target = identity_key(nct_id, case_text)
        kept = [review for review in self._reviews if review.identity != target]
        removed = len(kept) != len(self._reviews)
        self._reviews = kept
        return removed

    # ----------------------------------------------------------------- access
    def __len__(self) -> int:
        return len(self._reviews)

    def __iter__(self) -> Iterator[ReviewedRecord]:
        return iter(list(self._reviews))

    @property
    def reviews(self) -> List[ReviewedRecord]:
        return list(self._reviews)

    def get(self, nct_id: Optional[str], case_text: Optional[str]) -> Optional[ReviewedRecord]:
        target = identity_key(nct_id, case_text)
        for review in self._reviews:
            if review.identity == target:
                return review
        return None

    def is_reviewed(self, nct_id: Optional[str], case_text: Optional[str]) -> bool:
        return self.get(nct_id, case_text) is not None

    def for_case(self, case_text: Optional[str]) -> List[ReviewedRecord]:
        key = normalize_text(case_text)
        return [review for review in self._reviews if review.case_key == key]

    def stats(self) -> ReviewStats:
        reviews = self._reviews
        agreed = sum(1 for review in reviews if review.agrees_with_model)
        return ReviewStats(
            total=len(reviews),
            agreed=agreed,
            approved=sum(1 for review in reviews if review.review_status == STATUS_APPROVED),
            needs_review=sum(1 for review in reviews if review.review_status == STATUS_NEEDS_REVIEW),
            agreement_rate=agreement_rate(model_human_pairs(reviews)),
        )
