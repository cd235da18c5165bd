"""Console client for reviewing model eligibility grades."""
from __future__ import annotations

import math
from pathlib import Path
from typing import List, Optional

import typer
from rich import print
from rich.prompt import Prompt
from rich.table import Table

from . import __version__
from .config import ReviewConfig
from .errors import MissingGradeError, TrialReviewError
from .export import EXPORT_FORMATS, default_filename, export_reviews
from .formatting import (
    format_interventions,
    format_score,
    parse_patient_from_question,
    split_bullets,
    split_semicolons,
)
from .metrics import cohens_kappa, grade_confusion, judge_agreement, model_human_pairs
from .runtime import setup_logging
from .session import ReviewSession
from .shared.models import GRADES, TrialGradingRecord

app = typer.Typer(help="Trial grade review console")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"trialreview {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    state_dir: Optional[Path] = typer.Option(None, help="Directory holding persisted reviews and drafts"),
    storage: Optional[str] = typer.Option(None, help="Storage backend: sqlite, json or memory"),
    log_level: Optional[str] = typer.Option(None, help="Logging level"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    try:
        config = ReviewConfig.from_env(state_dir=state_dir, storage_backend=storage, log_level=log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    setup_logging(config.log_level, json_output=config.log_json)
    ctx.obj = config


def _open_session(ctx: typer.Context, csv_path: Optional[Path]) -> ReviewSession:
    config: ReviewConfig = ctx.obj
    session = ReviewSession.from_config(config)
    source = csv_path or config.csv_path
    if not session.load_file(source):
        print(f"[red]Failed to load CSV data:[/red] {session.error}")
        raise typer.Exit(code=1)
    return session


def _select(session: ReviewSession, case: int) -> None:
    try:
        session.select_case(case - 1)
    except TrialReviewError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _preview(text: str, width: int = 70) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[: width - 3] + "..."


def _patient_profile(record: TrialGradingRecord) -> List[str]:
    """Profile columns from the grading file, filled from the case text where blank."""
    parsed = parse_patient_from_question(record.question_text)
    if record.patient_age:
        age = f"{record.patient_age} {record.patient_age_unit}".strip()
    else:
        age = f"{parsed['age']} {parsed['age_unit']}".strip()
    parts = [
        ("Age", age),
        ("Sex", record.patient_sex or parsed["sex"]),
        ("Stage", record.patient_disease_stage or parsed["stage"]),
        ("Line", record.patient_line_of_therapy or parsed["line"]),
        ("Biomarkers", record.patient_biomarkers),
    ]
    return [f"{label}: {value}" for label, value in parts if value]


def _render_record(record: TrialGradingRecord, position: str) -> None:
    print(f"\n[bold]=== {position} {record.nct_id}: {record.trial_title} ===[/bold]")
    profile = _patient_profile(record)
    if profile:
        print("Patient: " + "  ".join(profile))
    if record.trial_phase or record.trial_age_range or record.gender:
        print(f"Phase: {record.trial_phase}  Ages: {record.trial_age_range}  Gender: {record.gender}")
    if record.retrieval_score:
        print(f"Retrieval score: {format_score(record.retrieval_score)}  Terms: {', '.join(split_bullets(record.matching_terms))}")
    if record.brief_summary:
        print(f"Summary: {record.brief_summary}")
    for item in format_interventions(record.interventions):
        print(f"  intervention: {item}")
    for title, items in (
        ("Inclusion", split_bullets(record.inclusion_criteria)),
        ("Exclusion", split_bullets(record.exclusion_criteria)),
        ("Prior therapies", split_semicolons(record.prior_therapies)),
    ):
        if items:
            print(f"[bold]{title}[/bold]")
            for item in items:
                print(f"  - {item}")
    print(f"Model grade: [bold]{record.model_grade or '-'}[/bold]")
    if record.model_reasoning:
        print(f"Reasoning: {record.model_reasoning}")
    if record.judge_correct_grade or record.judge_assessment:
        print(f"Judge: {record.judge_assessment} (grade {record.judge_correct_grade or '-'}) {record.judge_explanation}")


@app.command()
def cases(ctx: typer.Context, csv_path: Optional[Path] = typer.Argument(None, help="Grading CSV")) -> None:
    """List patient cases with trial and review counts."""
    session = _open_session(ctx, csv_path)
    table = Table(title="Cases")
    table.add_column("#", justify="right")
    table.add_column("Case")
    table.add_column("Trials", justify="right")
    table.add_column("Reviewed", justify="right")
    for number, case in enumerate(session.cases, start=1):
        reviewed, total = session.case_progress(case)
        table.add_row(str(number), _preview(session.index.display_text(case)), str(total), str(reviewed))
    print(table)


@app.command()
def show(
    ctx: typer.Context,
    csv_path: Optional[Path] = typer.Argument(None, help="Grading CSV"),
    case: int = typer.Option(1, help="Case number (1-based)"),
    trial: int = typer.Option(1, help="Trial number within the case (1-based)"),
) -> None:
    """Print one trial record."""
    session = _open_session(ctx, csv_path)
    _select(session, case)
    try:
        record = session.go_to_trial(trial - 1)
    except TrialReviewError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if record is None:
        raise typer.BadParameter(f"No trial {trial} in case {case}")
    _render_record(record, f"[{trial}/{len(session.current_trials)}]")
    review = session.reviews.get(record.nct_id, record.question_text)
    if review is not None:
        print(f"Reviewed: {review.human_grade} ({review.review_status}) at {review.reviewed_at}")


@app.command()
def review(
    ctx: typer.Context,
    csv_path: Optional[Path] = typer.Argument(None, help="Grading CSV"),
    case: int = typer.Option(1, help="Case number (1-based)"),
) -> None:
    """Interactively grade the trials of one case."""
    session = _open_session(ctx, csv_path)
    _select(session, case)
    print(f"[bold]Case {case}:[/bold] {session.index.display_text(session.selected_case or '')}")
    grades = "/".join(GRADES)
    while True:
        record = session.current_trial
        if record is None:
            break
        trial_no, total = session.trial_position + 1, len(session.current_trials)
        _render_record(record, f"[{trial_no}/{total}]")
        response = Prompt.ask(
            f"Human grade ({grades}; blank skips, u undoes previous, q quits)",
            default=session.initial_grade(record),
        ).strip()
        if response.lower() == "q":
            break
        if response.lower() == "u":
            if session.trial_position == 0:
                print("No previous trial in this case")
                continue
            previous = session.previous_trial()
            if previous is not None and session.undo():
                print(f"Undid review for {previous.nct_id}")
            continue
        if not response:
            if trial_no >= total:
                break
            session.next_trial()
            continue
        session.edit(human_grade=response)
        comments = Prompt.ask("Comments", default=session.initial_comments(record))
        session.edit(comments=comments)
        try:
            outcome = session.submit()
        except MissingGradeError as exc:
            print(f"[red]{exc}[/red]")
            continue
        print(f"Saved {outcome.review.nct_id}: {outcome.review.human_grade} ({outcome.review.review_status})")
        if outcome.case_complete:
            print("[green]All trials reviewed for this patient case![/green]")
            break
    reviewed, total = session.case_progress()
    print(f"{reviewed}/{total} trials reviewed for this case")


@app.command()
def undo(
    ctx: typer.Context,
    nct_id: str = typer.Argument(..., help="Trial identifier"),
    csv_path: Optional[Path] = typer.Argument(None, help="Grading CSV"),
    case: int = typer.Option(1, help="Case number (1-based)"),
) -> None:
    """Remove the finalized review of one trial."""
    session = _open_session(ctx, csv_path)
    _select(session, case)
    removed = session.reviews.remove(nct_id, session.index.display_text(session.selected_case or ""))
    print(f"Removed review for {nct_id}" if removed else f"No review recorded for {nct_id}")


@app.command()
def stats(ctx: typer.Context) -> None:
    """Summarize finalized reviews."""
    config: ReviewConfig = ctx.obj
    session = ReviewSession.from_config(config)
    summary = session.reviews.stats()
    reviews = session.reviews.reviews
    rate = "n/a" if math.isnan(summary.agreement_rate) else f"{summary.agreement_rate:.1%}"
    judge = judge_agreement(reviews)
    kappa = cohens_kappa(model_human_pairs(reviews))
    table = Table(title="Review statistics")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Reviews", str(summary.total))
    table.add_row("Approved", str(summary.approved))
    table.add_row("Needs review", str(summary.needs_review))
    table.add_row("Agreement rate", rate)
    table.add_row("Cohen's kappa (model vs human)", "n/a" if math.isnan(kappa) else f"{kappa:.3f}")
    table.add_row("Judge agreement", "n/a" if math.isnan(judge) else f"{judge:.1%}")
    table.add_row("Drafts", str(len(session.drafts)))
    print(table)
    if not reviews:
        return
    matrix = grade_confusion(reviews)
    confusion = Table(title="Model grade (rows) vs human grade (columns)")
    confusion.add_column("")
    for label in matrix:
        confusion.add_column(label or "-", justify="right")
    for row, counts in matrix.items():
        confusion.add_row(row or "-", *(str(count) for count in counts.values()))
    print(confusion)


@app.command()
def export(
    ctx: typer.Context,
    csv_path: Optional[Path] = typer.Argument(None, help="Grading CSV"),
    output: Optional[Path] = typer.Option(None, help="Output file; defaults to a dated name in the current directory"),
    fmt: str = typer.Option("simple", "--format", help=f"One of: {', '.join(EXPORT_FORMATS)}"),
) -> None:
    """Export finalized reviews."""
    if fmt not in EXPORT_FORMATS:
        raise typer.BadParameter(f"Unsupported export format: {fmt}")
    session = _open_session(ctx, csv_path)
    target = output or Path(default_filename(fmt))
    written = export_reviews(session.reviews, session.index, target, fmt)
    if written is None:
        print("No reviews to export")
        return
    print(f"Exported {len(session.reviews)} reviews to {written}")


if __name__ == "__main__":  # pragma: no cover
    app()
