"""Configuration for the review toolkit.

Values default from environment variables so that the console client can be
pointed at a different grading file or state directory without flags.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


STORAGE_BACKENDS = ("sqlite", "json", "memory")


def _env_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _env_path(name: str, default: str) -> Path:
    val = os.getenv(name)
    if val is None or val == "":
        return Path(default)
    return Path(val)


@dataclass
class ReviewConfig:
    csv_path: Path = field(default_factory=lambda: _env_path("TRIALREVIEW_CSV", "grades.csv"))
    state_dir: Path = field(default_factory=lambda: _env_path("TRIALREVIEW_STATE_DIR", ".trialreview"))
    storage_backend: str = field(default_factory=lambda: os.getenv("TRIALREVIEW_STORAGE", "sqlite"))
    reviews_key: str = "reviewedTrials"
    drafts_key: str = "reviewDrafts"
    log_level: str = field(default_factory=lambda: os.getenv("TRIALREVIEW_LOG_LEVEL", "WARNING"))
    log_json: bool = field(default_factory=lambda: _env_bool("TRIALREVIEW_LOG_JSON", False))
    # Pre-fill the grade prompt with the judge's corrected grade when no draft exists
    default_to_judge_grade: bool = field(default_factory=lambda: _env_bool("TRIALREVIEW_DEFAULT_JUDGE", True))

    def __post_init__(self) -> None:
        self.csv_path = Path(self.csv_path)
        self.state_dir = Path(self.state_dir)
        self.storage_backend = (self.storage_backend or "sqlite").strip().lower()
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend {self.storage_backend!r}; expected one of {', '.join(STORAGE_BACKENDS)}"
            )

    @classmethod
    def from_env(cls, **overrides: object) -> "ReviewConfig":
        """Build a config from the environment, applying non-``None`` overrides."""
        cleaned = {key: value for key, value in overrides.items() if value is not None}
        return cls(**cleaned)  # type: ignore[arg-type]

    @property
    def sqlite_path(self) -> Path:
        return self.state_dir / "review_state.db"
