"""Agreement metrics between model, judge and human grades."""
from __future__ import annotations

import math
from collections import Counter
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .formatting import normalize_grade
from .shared.models import GRADES, ReviewedRecord


def agreement_rate(pairs: Sequence[Tuple[Optional[str], Optional[str]]]) -> float:
    """Fraction of pairs whose two grades are equal.

    Returns ``nan`` for an empty sequence; callers decide how to present an
    undefined rate.
    """
    total = len(pairs)
    if total == 0:
        return math.nan
    agree = sum(1 for a, b in pairs if a == b)
    return agree / total


def cohens_kappa(pairs: Sequence[Tuple[Optional[str], Optional[str]]]) -> float:
    """Cohen's kappa between two graders over the letter grades.

    Grades are compared after :func:`normalize_grade`, so ``" b"`` and ``"B"``
    agree; a pair with a blank or non-letter grade on either side is left out.
    Returns ``nan`` when no pair qualifies.
    """
    graded = [(normalize_grade(a), normalize_grade(b)) for a, b in pairs]
    graded = [(a, b) for a, b in graded if a and b]
    if not graded:
        return math.nan
    total = len(graded)
    observed = agreement_rate(graded)
    first = Counter(a for a, _ in graded)
    second = Counter(b for _, b in graded)
    expected = sum(first[grade] * second[grade] for grade in GRADES) / (total * total)
    if expected == 1.0:
        return 1.0
    return (observed - expected) / (1 - expected)


def model_human_pairs(reviews: Iterable[ReviewedRecord]) -> list[tuple[str, str]]:
    return [(review.model_grade, review.human_grade) for review in reviews]


def judge_agreement(reviews: Iterable[ReviewedRecord]) -> float:
    """Share of judged reviews where the judge's corrected grade matches the human."""
    pairs = [(r.judge_correct_grade, r.human_grade) for r in reviews if r.judge_correct_grade]
    return agreement_rate(pairs)


def grade_confusion(reviews: Iterable[ReviewedRecord]) -> Dict[str, Dict[str, int]]:
    """Counts of ``model grade -> human grade`` over finalized reviews.

    Rows and columns always include the standard grades; any other value seen
    (for example an empty model grade) is added after them.
    """
    counts: Counter[tuple[str, str]] = Counter()
    labels = list(GRADES)
    for review in reviews:
        key = (review.model_grade, review.human_grade)
        counts[key] += 1
        for value in key:
            if value not in labels:
                labels.append(value)
    return {row: {col: counts[(row, col)] for col in labels} for row in labels}
