from __future__ import annotations

from dataclasses import fields

from trialreview.csv_parser import parse_csv
from trialreview.headers import FIELD_SPECS, LEGACY_COLUMNS, missing_required, resolve_headers
from trialreview.shared.models import TrialGradingRecord


def test_field_specs_cover_every_record_attribute_in_order() -> None:
    assert tuple(spec.name for spec in FIELD_SPECS) == tuple(f.name for f in fields(TrialGradingRecord))


def test_legacy_columns_follow_fallback_positions() -> None:
    assert LEGACY_COLUMNS == (
        "question_text",
        "nct_id",
        "trial_title",
        "trial_phase",
        "trial_age_range",
        "diseases_targeted",
        "inclusion_criteria",
        "exclusion_criteria",
        "prior_therapies",
        "gender",
        "model_grade",
        "human_grade",
    )


def test_reasoning_alias_populates_model_reasoning() -> None:
    text = "question_text,nct_id,model_grade,reasoning\nQ,NCT1,A,Because criteria match\n"

    [record] = parse_csv(text)

    assert record.model_reasoning == "Because criteria match"


def test_canonical_reasoning_wins_over_alias_when_present() -> None:
    text = "question_text,nct_id,reasoning,model_reasoning\nQ,NCT1,old,new\n"

    [record] = parse_csv(text)

    assert record.model_reasoning == "new"


def test_alias_used_when_canonical_column_is_empty() -> None:
    text = "question_text,nct_id,model_reasoning,llm_explanation\nQ,NCT1,,from llm\n"

    [record] = parse_csv(text)

    assert record.model_reasoning == "from llm"


def test_old_judge_headers_are_accepted() -> None:
    text = "question_text,nct_id,judge_accuracy,judge_comment\nQ,NCT1,correct,Looks right\n"

    [record] = parse_csv(text)

    assert record.judge_assessment == "correct"
    assert record.judge_explanation == "Looks right"


def test_unrecognized_headers_fall_back_to_legacy_positions() -> None:
    values = ["case", "id", "title", "ph", "ages", "dz", "inc", "exc", "prior", "sex", "A", "B"]
    text = ",".join(f"c{i}" for i in range(12)) + "\n" + ",".join(values) + "\n"

    [record] = parse_csv(text)

    assert record.question_text == "case"
    assert record.nct_id == "id"
    assert record.trial_title == "title"
    assert record.gender == "sex"
    assert record.model_grade == "A"
    assert record.human_grade == "B"
    assert record.model_reasoning == ""


def test_resolution_reports_positional_columns() -> None:
    resolution = resolve_headers(["question_text", "nct_id", "whatever"])

    positional = missing_required(resolution)

    assert "question_text" not in positional
    assert "trial_title" in positional
    assert resolution.columns["trial_title"] == (2,)
    assert resolution.columns["brief_summary"] == ()


def test_named_column_beats_fallback_position() -> None:
    resolution = resolve_headers(["nct_id", "question_text"])

    assert resolution.columns["question_text"] == (1,)
    assert resolution.columns["nct_id"] == (0,)


def test_extract_tolerates_short_rows() -> None:
    resolution = resolve_headers(["question_text", "nct_id", "model_grade"])

    values = resolution.extract(["Q"])

    assert values["question_text"] == "Q"
    assert values["nct_id"] == ""
    assert values["model_grade"] == ""
