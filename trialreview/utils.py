"""Utility helpers for the trial review toolkit."""
from __future__ import annotations

import os
from pathlib import Path


def ensure_dir(path: os.PathLike[str] | str) -> Path:
    """Ensure directory exists and return its :class:`Path`."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_text(path: os.PathLike[str] | str, text: str) -> Path:
    """Write ``text`` to ``path`` through a temporary file and an atomic replace."""
    target = Path(path)
    ensure_dir(target.parent)
    tmp = target.with_name(target.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as fh:
        fh.write(text)
    os.replace(tmp, target)
    return target
