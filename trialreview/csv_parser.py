"""Lenient parser for grading CSV exports.

The grading files come out of spreadsheet tooling with inconsistent quoting,
so the parser deliberately does not follow RFC 4180: a double quote only
toggles "inside quotes" mode and is dropped, which means an escaped quote
(``""``) inside a quoted field disappears instead of becoming a literal quote.
Rows never fail to parse; missing trailing columns read as empty strings.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from .errors import CsvLoadError
from .headers import HeaderResolution, missing_required, resolve_headers
from .shared.models import TrialGradingRecord

LOGGER = logging.getLogger(__name__)


def split_line(line: str, delimiter: str = ",") -> List[str]:
    """Split one CSV line, honouring quotes only as delimiter guards.

    >>> split_line('"a, b",id1,title')
    ['a, b', 'id1', 'title']
    """
    values: List[str] = []
    current: List[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            values.append("".join(current))
            current = []
        else:
            current.append(char)
    values.append("".join(current))
    return values


def split_header(line: str, delimiter: str = ",") -> List[str]:
    """Header cells are split on every delimiter; quotes are stripped."""
    return [cell.replace('"', "") for cell in line.split(delimiter)]


def parse_csv(text: str) -> List[TrialGradingRecord]:
    """Parse grading CSV text into records, in file order.

    Blank lines are skipped anywhere in the input.  Input without any
    non-blank line yields an empty list.
    """
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        return []

    resolution = resolve_headers(split_header(lines[0]))
    positional = missing_required(resolution)
    if positional:
        LOGGER.warning(
            "Grading CSV headers missing; using column position for %s",
            ", ".join(positional),
            extra={"columns": list(positional)},
        )
    return [_record_from_line(line.strip(), resolution) for line in lines[1:]]


def _record_from_line(line: str, resolution: HeaderResolution) -> TrialGradingRecord:
    return TrialGradingRecord(**resolution.extract(split_line(line)))


def load_csv(path: Path | str) -> List[TrialGradingRecord]:
    """Read and parse a grading CSV from disk.

    Raises :class:`~trialreview.errors.CsvLoadError` when the file cannot be
    read or is not valid UTF-8.
    """
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise CsvLoadError(f"Failed to load CSV data from {source}: {exc}") from exc
    records = parse_csv(text)
    LOGGER.info("Loaded %d grading records from %s", len(records), source, extra={"path": str(source)})
    return records
