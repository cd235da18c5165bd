from __future__ import annotations

import sys
from pathlib import Path
from typing import List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from trialreview.drafts import DraftStore
from trialreview.reviews import ReviewStore
from trialreview.shared.models import TrialGradingRecord
from trialreview.storage import KeyValueStorage, MemoryStorage

HEADER = (
    "question_text,nct_id,retrieval_score,matching_terms,trial_title,trial_phase,trial_age_range,"
    "diseases_targeted,inclusion_criteria,exclusion_criteria,prior_therapies,gender,model_grade,"
    "model_reasoning,judge_assessment,judge_correct_grade,judge_explanation,human_grade"
)

GRADES_CSV = "\n".join(
    [
        HEADER,
        '"Patient X is 50, with NSCLC",NCT001,0.91234,EGFR|lung,Osimertinib study,Phase 2,18-75,'
        'NSCLC,Age >= 18|EGFR mutation,Prior osimertinib,platinum; docetaxel,All,B,Mostly eligible,correct,B,Agrees,',
        '"Patient X is 50, with NSCLC",NCT002,0.5,lung,Chemo study,Phase 3,18-80,'
        'NSCLC,Age >= 18,Brain mets,,All,C,Partial match,incorrect,D,Should be lower,',
        "Patient Y is 61,NCT003,0.1,breast,Breast study,Phase 1,40-70,Breast cancer,Female,,,Female,F,Wrong disease,,,,",
    ]
)


class FailingStorage(KeyValueStorage):
    """Storage whose medium always errors, like a full or read-only disk."""

    name = "failing"

    def _read_raw(self, key: str):
        raise OSError("storage unavailable")

    def _write_raw(self, key: str, text: str) -> None:
        raise OSError("quota exceeded")


def make_record(nct_id: str = "NCT001", question_text: str = "Q", model_grade: str = "B", **extra: str) -> TrialGradingRecord:
    return TrialGradingRecord(question_text=question_text, nct_id=nct_id, model_grade=model_grade, **extra)


@pytest.fixture
def grades_csv() -> str:
    return GRADES_CSV


@pytest.fixture
def grades_file(tmp_path: Path) -> Path:
    path = tmp_path / "grades.csv"
    path.write_text(GRADES_CSV, encoding="utf-8")
    return path


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def review_store(memory_storage: MemoryStorage) -> ReviewStore:
    store = ReviewStore(memory_storage)
    store.load()
    return store


@pytest.fixture
def draft_store(memory_storage: MemoryStorage) -> DraftStore:
    store = DraftStore(memory_storage)
    store.load()
    return store


@pytest.fixture
def records() -> List[TrialGradingRecord]:
    return [
        make_record("NCT001", "Q", "B", trial_title="First"),
        make_record("NCT002", "Q", "C", trial_title="Second"),
    ]
