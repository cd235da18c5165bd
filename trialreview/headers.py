"""Header resolution for grading CSVs.

Grading files have drifted between schema versions: optional columns come and
go, a few columns were renamed, and the oldest exports relied on column order.
:data:`FIELD_SPECS` records, for every record attribute, the canonical header
name, its historical aliases and (for the twelve legacy columns) the position
to fall back on when no header matches.  :func:`resolve_headers` applies the
table to a header row once per parse.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class FieldSpec:
    name: str
    aliases: Tuple[str, ...] = ()
    fallback_index: Optional[int] = None

    @property
    def header_names(self) -> Tuple[str, ...]:
        return (self.name, *self.aliases)


FIELD_SPECS: Tuple[FieldSpec, ...] = (
    FieldSpec("question_text", fallback_index=0),
    FieldSpec("nct_id", fallback_index=1),
    FieldSpec("retrieval_score"),
    FieldSpec("matching_terms"),
    FieldSpec("trial_title", fallback_index=2),
    FieldSpec("brief_summary"),
    FieldSpec("interventions"),
    FieldSpec("trial_phase", fallback_index=3),
    FieldSpec("trial_age_range", fallback_index=4),
    FieldSpec("diseases_targeted", fallback_index=5),
    FieldSpec("inclusion_criteria", fallback_index=6),
    FieldSpec("exclusion_criteria", fallback_index=7),
    FieldSpec("prior_therapies", fallback_index=8),
    FieldSpec("gender", fallback_index=9),
    FieldSpec("model_grade", fallback_index=10),
    FieldSpec(
        "model_reasoning",
        aliases=("reasoning", "model_explanation", "llm_reasoning", "llm_explanation"),
    ),
    FieldSpec("judge_assessment", aliases=("judge_accuracy",)),
    FieldSpec("judge_correct_grade"),
    FieldSpec("judge_explanation", aliases=("judge_comment",)),
    FieldSpec("patient_diseases_targeted"),
    FieldSpec("patient_biomarkers"),
    FieldSpec("patient_inclusion_criteria"),
    FieldSpec("patient_exclusion_criteria"),
    FieldSpec("patient_prior_therapies"),
    FieldSpec("patient_disease_stage"),
    FieldSpec("patient_line_of_therapy"),
    FieldSpec("patient_age"),
    FieldSpec("patient_age_unit"),
    FieldSpec("patient_sex"),
    FieldSpec("patient_trial_phase_preference"),
    FieldSpec("human_grade", fallback_index=11),
)

LEGACY_COLUMNS: Tuple[str, ...] = tuple(
    spec.name for spec in sorted(
        (s for s in FIELD_SPECS if s.fallback_index is not None),
        key=lambda s: s.fallback_index,  # type: ignore[arg-type, return-value]
    )
)


def normalize_header(name: str) -> str:
    return name.strip().lower()


@dataclass
class HeaderResolution:
    """Column positions for every record attribute, in priority order."""

    columns: Dict[str, Tuple[int, ...]] = field(default_factory=dict)
    positional: Tuple[str, ...] = ()

    def extract(self, values: Sequence[str]) -> Dict[str, str]:
        """Pick attribute values out of one parsed row.

        The first candidate column holding a non-empty value wins; a column
        beyond the end of a short row reads as empty.
        """
        size = len(values)
        out: Dict[str, str] = {}
        for name, indices in self.columns.items():
            value = ""
            for idx in indices:
                if idx < size and values[idx]:
                    value = values[idx]
                    break
            out[name] = value
        return out


def resolve_headers(headers: Sequence[str], specs: Sequence[FieldSpec] = FIELD_SPECS) -> HeaderResolution:
    lookup: Dict[str, int] = {}
    for idx, header in enumerate(headers):
        lookup.setdefault(normalize_header(header), idx)

    columns: Dict[str, Tuple[int, ...]] = {}
    positional: List[str] = []
    for spec in specs:
        indices = [lookup[normalize_header(h)] for h in spec.header_names if normalize_header(h) in lookup]
        if not indices and spec.fallback_index is not None:
            indices = [spec.fallback_index]
            positional.append(spec.name)
        columns[spec.name] = tuple(indices)
    return HeaderResolution(columns=columns, positional=tuple(positional))


def missing_required(resolution: HeaderResolution) -> Tuple[str, ...]:
    """Legacy columns that were only found by position, not by header name."""
    return resolution.positional
