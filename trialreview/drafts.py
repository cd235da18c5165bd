"""Scratch storage for unsubmitted grade and comment edits."""
from __future__ import annotations

import logging
from typing import Dict, Optional

from .shared.models import DraftEntry, draft_key
from .storage import KeyValueStorage, StorageResult

LOGGER = logging.getLogger(__name__)

DEFAULT_DRAFTS_KEY = "reviewDrafts"

_UNSET = object()


class DraftStore:
    """Drafts keyed by ``"<nct_id>::<normalized case text>"``.

    Drafts are hints for resuming an edit; they never count as reviews and
    their lifecycle is independent of :class:`~trialreview.reviews.ReviewStore`.
    """

    def __init__(self, storage: KeyValueStorage, key: str = DEFAULT_DRAFTS_KEY) -> None:
        self.storage = storage
        self.key = key
        self._drafts: Dict[str, DraftEntry] = {}
        self.last_result: Optional[StorageResult] = None

    def load(self) -> StorageResult:
        result = self.storage.read(self.key)
        self._drafts = {}
        if result.ok and result.found:
            payload = result.value
            if isinstance(payload, dict):
                self._drafts = {
                    str(key): DraftEntry.from_dict(value)
                    for key, value in payload.items()
                    if isinstance(value, dict)
                }
            else:
                LOGGER.warning("Ignoring stored drafts: expected a mapping, got %s", type(payload).__name__)
                result = StorageResult(ok=False, key=self.key, error="stored drafts are not a mapping")
        self.last_result = result
        return result

    def save(self) -> StorageResult:
        payload = {key: entry.to_dict() for key, entry in self._drafts.items()}
        self.last_result = self.storage.write(self.key, payload)
        return self.last_result

    def get(self, nct_id: Optional[str], case_text: Optional[str]) -> Optional[DraftEntry]:
        entry = self._drafts.get(draft_key(nct_id, case_text))
        if entry is None:
            return None
        return DraftEntry(human_grade=entry.human_grade, comments=entry.comments)

    def set(
        self,
        nct_id: Optional[str],
        case_text: Optional[str],
        human_grade: object = _UNSET,
        comments: object = _UNSET,
    ) -> DraftEntry:
        """Merge the given fields into the draft; omitted fields keep their value."""
        update = DraftEntry(
            human_grade=None if human_grade is _UNSET else human_grade,  # type: ignore[arg-type]
            comments=None if comments is _UNSET else comments,  # type: ignore[arg-type]
        )
        key = draft_key(nct_id, case_text)
        merged = self._drafts.get(key, DraftEntry()).merged(update)
        self._drafts[key] = merged
        self.save()
        return DraftEntry(human_grade=merged.human_grade, comments=merged.comments)

    def delete(self, nct_id: Optional[str], case_text: Optional[str]) -> bool:
        key = draft_key(nct_id, case_text)
        if key not in self._drafts:
            return False
        del self._drafts[key]
        self.save()
        return True

    def __len__(self) -> int:
        return len(self._drafts)

    def __contains__(self, key: object) -> bool:
        return key in self._drafts
