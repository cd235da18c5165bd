"""Grouping of grading records by patient case."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .shared.models import TrialGradingRecord, identity_key, normalize_text


@dataclass
class CaseIndex:
    """Records partitioned by whitespace-normalized case text.

    All keys are normalized on the way in, so two spellings of the same case
    narrative that differ only in whitespace land in one group.  Lookups
    accept raw case text and normalize it the same way.
    """

    groups: Dict[str, List[TrialGradingRecord]] = field(default_factory=dict)
    cases: List[str] = field(default_factory=list)

    @classmethod
    def build(cls, records: Iterable[TrialGradingRecord]) -> "CaseIndex":
        index = cls()
        for record in records:
            index.add(record)
        return index

    def add(self, record: TrialGradingRecord) -> None:
        key = record.case_key
        bucket = self.groups.get(key)
        if bucket is None:
            bucket = self.groups[key] = []
            self.cases.append(key)
        bucket.append(record)

    def __len__(self) -> int:
        return len(self.cases)

    def __contains__(self, case_text: object) -> bool:
        return isinstance(case_text, str) and normalize_text(case_text) in self.groups

    def records_for(self, case_text: Optional[str]) -> List[TrialGradingRecord]:
        return list(self.groups.get(normalize_text(case_text), []))

    def display_text(self, case_key: str) -> str:
        """Raw case narrative of the first record filed under ``case_key``."""
        bucket = self.groups.get(normalize_text(case_key))
        if not bucket:
            return ""
        return bucket[0].question_text

    def find(self, nct_id: Optional[str], case_text: Optional[str]) -> Optional[TrialGradingRecord]:
        """First record with this identity; duplicates later in the file are shadowed."""
        target = identity_key(nct_id, case_text)
        for record in self.groups.get(target[1], []):
            if record.identity == target:
                return record
        return None

    def case_at(self, position: int) -> str:
        return self.cases[position]


def group_by_case(records: Iterable[TrialGradingRecord]) -> Dict[str, List[TrialGradingRecord]]:
    return CaseIndex.build(records).groups


def unique_cases(records: Iterable[TrialGradingRecord]) -> List[str]:
    return CaseIndex.build(records).cases
