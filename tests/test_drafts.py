from __future__ import annotations

from conftest import FailingStorage, make_record

from trialreview.drafts import DraftStore
from trialreview.reviews import ReviewStore
from trialreview.shared.models import DraftEntry
from trialreview.storage import MemoryStorage


def test_set_merges_fields_last_write_wins(draft_store: DraftStore) -> None:
    draft_store.set("NCT1", "Q", human_grade="B")
    draft_store.set("NCT1", "Q", comments="first note")
    draft_store.set("NCT1", "Q", comments="second note")

    assert draft_store.get("NCT1", "Q") == DraftEntry(human_grade="B", comments="second note")


def test_draft_key_uses_normalized_case_text(draft_store: DraftStore) -> None:
    draft_store.set("NCT1", "Patient  X\n", human_grade="A")

    assert draft_store.get("NCT1", "Patient X") == DraftEntry(human_grade="A")
    assert "NCT1::Patient X" in draft_store


def test_get_missing_returns_none(draft_store: DraftStore) -> None:
    assert draft_store.get("NCT1", "Q") is None


def test_empty_comment_is_kept_as_set(draft_store: DraftStore) -> None:
    draft_store.set("NCT1", "Q", comments="text")
    draft_store.set("NCT1", "Q", comments="")

    assert draft_store.get("NCT1", "Q").comments == ""


def test_delete(draft_store: DraftStore) -> None:
    draft_store.set("NCT1", "Q", human_grade="A")

    assert draft_store.delete("NCT1", "Q") is True
    assert draft_store.delete("NCT1", "Q") is False
    assert draft_store.get("NCT1", "Q") is None


def test_persisted_format_and_reload() -> None:
    storage = MemoryStorage()
    drafts = DraftStore(storage)
    drafts.set("NCT1", "Q  one", human_grade="C")

    assert storage.read("reviewDrafts").value == {"NCT1::Q one": {"human_grade": "C"}}

    restored = DraftStore(storage)
    restored.load()
    assert restored.get("NCT1", "Q one") == DraftEntry(human_grade="C")


def test_read_failure_means_no_draft() -> None:
    drafts = DraftStore(FailingStorage())

    result = drafts.load()

    assert result.ok is False
    assert drafts.get("NCT1", "Q") is None


def test_write_failure_keeps_draft_in_memory() -> None:
    drafts = DraftStore(FailingStorage())

    drafts.set("NCT1", "Q", human_grade="A")

    assert drafts.get("NCT1", "Q") == DraftEntry(human_grade="A")
    assert drafts.last_result.ok is False


def test_drafts_and_reviews_are_independent() -> None:
    storage = MemoryStorage()
    drafts = DraftStore(storage)
    reviews = ReviewStore(storage)
    record = make_record("NCT1", "Q", "B")

    drafts.set(record.nct_id, record.question_text, human_grade="B", comments="draft")
    assert len(reviews) == 0
    assert reviews.stats().total == 0

    reviews.upsert(record, "B", "final")
    drafts.delete(record.nct_id, record.question_text)
    assert reviews.is_reviewed("NCT1", "Q")

    reviews.remove("NCT1", "Q")
    drafts.set(record.nct_id, record.question_text, comments="again")
    assert drafts.get("NCT1", "Q") == DraftEntry(comments="again")
    assert not reviews.is_reviewed("NCT1", "Q")
