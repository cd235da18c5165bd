"""Export of finalized reviews as CSV tables or a JSON summary."""
from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .grouping import CaseIndex
from .reviews import ReviewStore
from .shared.models import ReviewedRecord, TrialGradingRecord
from .utils import atomic_write_text, ensure_dir

LOGGER = logging.getLogger(__name__)

EXPORT_FORMATS = ("simple", "full", "sheet", "json")

SIMPLE_COLUMNS = ["question_text", "nct_id", "model_grade", "human_grade", "human_notes"]

FULL_COLUMNS = [
    "question_text",
    "nct_id",
    "retrieval_score",
    "matching_terms",
    "trial_title",
    "brief_summary",
    "interventions",
    "trial_phase",
    "trial_age_range",
    "diseases_targeted",
    "inclusion_criteria",
    "exclusion_criteria",
    "prior_therapies",
    "gender",
    "model_grade",
    "reasoning",
    "patient_diseases_targeted",
    "patient_biomarkers",
    "patient_inclusion_criteria",
    "patient_exclusion_criteria",
    "patient_prior_therapies",
    "patient_disease_stage",
    "patient_line_of_therapy",
    "patient_age",
    "patient_age_unit",
    "patient_sex",
    "patient_trial_phase_preference",
    "judge_assessment",
    "judge_correct_grade",
    "judge_explanation",
    "human_grade",
    "human_notes",
]

SHEET_COLUMNS = {
    "question_text": "Question Text",
    "nct_id": "NCT ID",
    "trial_title": "Trial Title",
    "trial_phase": "Trial Phase",
    "review_status": "Review Status",
    "comments": "Comments",
    "reviewed_at": "Reviewed At",
    "model_grade": "Model Grade",
    "human_grade": "Human Grade",
}


def simple_rows(reviews: Iterable[ReviewedRecord]) -> List[Dict[str, str]]:
    return [
        {
            "question_text": review.question_text,
            "nct_id": review.nct_id,
            "model_grade": review.model_grade,
            "human_grade": review.human_grade,
            "human_notes": review.comments,
        }
        for review in reviews
    ]


def full_rows(
    reviews: Iterable[ReviewedRecord],
    records: Sequence[TrialGradingRecord] | CaseIndex,
) -> List[Dict[str, str]]:
    """One row per review with every source column.

    Descriptive fields come from the parsed record with the same identity so
    that columns the review object never carried are not exported blank; the
    review's own copy is only used when the record is no longer in the file.
    """
    index = records if isinstance(records, CaseIndex) else CaseIndex.build(records)
    rows: List[Dict[str, str]] = []
    for review in reviews:
        base: Optional[TrialGradingRecord] = index.find(review.nct_id, review.question_text)
        source = base if base is not None else review
        row: Dict[str, str] = {}
        for column in FULL_COLUMNS:
            if column == "reasoning":
                row[column] = source.model_reasoning or review.model_reasoning
            elif column == "human_grade":
                row[column] = review.human_grade
            elif column == "human_notes":
                row[column] = review.comments
            else:
                row[column] = getattr(source, column, "") or ""
        rows.append(row)
    return rows


def sheet_rows(reviews: Iterable[ReviewedRecord]) -> List[Dict[str, str]]:
    return [{header: getattr(review, column) for column, header in SHEET_COLUMNS.items()} for review in reviews]


def to_frame(rows: List[Dict[str, str]], columns: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=list(columns), dtype=str).fillna("")


def json_summary(store: ReviewStore, export_date: Optional[str] = None) -> Dict[str, object]:
    stats = store.stats()
    rate = None if math.isnan(stats.agreement_rate) else stats.agreement_rate
    return {
        "reviewed_trials": [review.to_dict() for review in store],
        "export_date": export_date or datetime.now(timezone.utc).isoformat(),
        "total_reviews": stats.total,
        "agreement_rate": rate,
    }


def default_filename(fmt: str, today: Optional[str] = None) -> str:
    day = today or datetime.now(timezone.utc).date().isoformat()
    suffix = "json" if fmt == "json" else "csv"
    stem = "trial-reviews-full" if fmt == "full" else "trial-reviews"
    return f"{stem}-{day}.{suffix}"


def build_table(store: ReviewStore, records: Sequence[TrialGradingRecord] | CaseIndex, fmt: str) -> pd.DataFrame:
    if fmt == "simple":
        return to_frame(simple_rows(store), SIMPLE_COLUMNS)
    if fmt == "full":
        return to_frame(full_rows(store, records), FULL_COLUMNS)
    if fmt == "sheet":
        return to_frame(sheet_rows(store), list(SHEET_COLUMNS.values()))
    raise ValueError(f"Unsupported export format: {fmt}")


def export_reviews(
    store: ReviewStore,
    records: Sequence[TrialGradingRecord] | CaseIndex,
    path: Path | str,
    fmt: str = "simple",
) -> Optional[Path]:
    """Write the store's reviews to ``path``; returns ``None`` when there is nothing to export."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")
    if not len(store):
        LOGGER.info("No reviews to export")
        return None
    target = Path(path)
    ensure_dir(target.parent)
    if fmt == "json":
        atomic_write_text(target, json.dumps(json_summary(store), indent=2, ensure_ascii=False))
    else:
        build_table(store, records, fmt).to_csv(target, index=False, lineterminator="\n")
    LOGGER.info("Exported %d reviews to %s", len(store), target, extra={"format": fmt})
    return target
