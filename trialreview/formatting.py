"""Helpers that turn semi-structured record fields into display pieces."""
from __future__ import annotations

import math
import re
from typing import Dict, List, Optional

from .shared.models import GRADES

_INTERVENTION_SPLIT_RE = re.compile(r";\s+(?=\{)")
_NAME_RE = re.compile(r"'name':\s*'([^']+)'")
_TYPE_RE = re.compile(r"'intervention_type':\s*'([^']+)'")
_DESCRIPTION_RE = re.compile(r"'description':\s*'([^']+)'")
_AGE_RE = re.compile(r"(\d{1,3})\s*(year|yr|yo)")


def _split(text: Optional[str], sep: str) -> List[str]:
    if not text:
        return []
    return [part.strip() for part in text.split(sep) if part.strip()]


def split_bullets(text: Optional[str]) -> List[str]:
    """Criteria lists are pipe-delimited."""
    return _split(text, "|")


def split_semicolons(text: Optional[str]) -> List[str]:
    return _split(text, ";")


def format_interventions(text: Optional[str]) -> List[str]:
    """Render dict-like intervention entries as ``name (type) - description``.

    >>> format_interventions("{'name': 'Drug X', 'intervention_type': 'DRUG'}")
    ['Drug X (DRUG)']
    """
    if not text:
        return []
    items = [part.strip() for part in _INTERVENTION_SPLIT_RE.split(text) if part.strip()]
    if not items:
        items = split_semicolons(text)
    rendered: List[str] = []
    for item in items:
        name = _first_group(_NAME_RE, item)
        iv_type = _first_group(_TYPE_RE, item)
        description = _first_group(_DESCRIPTION_RE, item)
        if name or iv_type or description:
            header = " ".join(part for part in (name, f"({iv_type})" if iv_type else "") if part)
            if description:
                rendered.append(f"{header} - {description}" if header else description)
            else:
                rendered.append(header)
        else:
            rendered.append(re.sub(r"\s+", " ", item.replace("{", "").replace("}", "")).strip())
    return rendered


def _first_group(pattern: re.Pattern[str], text: str) -> str:
    match = pattern.search(text)
    return match.group(1) if match else ""


def format_score(score: Optional[str]) -> str:
    """Three decimal places for numeric scores; anything else is returned unchanged."""
    if not score:
        return ""
    try:
        value = float(score)
    except ValueError:
        return score
    if math.isnan(value):
        return score
    return f"{value:.3f}"


def normalize_grade(value: Optional[str]) -> str:
    """Upper-case and trim a grade; values outside A-F come back as ``""``."""
    grade = (value or "").strip().upper()
    return grade if grade in GRADES else ""


def parse_patient_from_question(text: Optional[str]) -> Dict[str, str]:
    """Best-effort patient attributes from the case narrative.

    Used when the grading file carries no extracted patient profile.
    """
    raw = text or ""
    lower = raw.lower()
    age_match = _AGE_RE.search(lower)
    sex = ""
    if re.search(r"\bmale\b|\bman\b", lower):
        sex = "male"
    if re.search(r"\bfemale\b|\bwoman\b", lower):
        sex = "female"
    if re.search(r"\bmetastatic\b", lower):
        stage = "metastatic"
    elif re.search(r"\brecurrent\b", lower):
        stage = "recurrent"
    else:
        stage = ""
    if re.search(r"first[-\s]*line", raw, re.IGNORECASE):
        line = "1L"
    elif re.search(r"second[-\s]*line|2l", raw, re.IGNORECASE):
        line = "2L"
    elif re.search(r"third[-\s]*line|3l", raw, re.IGNORECASE):
        line = "3L"
    else:
        line = ""
    return {
        "age": age_match.group(1) if age_match else "",
        "age_unit": "years" if age_match else "",
        "sex": sex,
        "stage": stage,
        "line": line,
    }
