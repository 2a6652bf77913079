from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


def _env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(key)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _env_int(key: str, default: int) -> int:
    v = _env_str(key)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    v = _env_str(key)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    v = _env_str(key)
    if v is None:
        return default
    return v.lower() in {"1", "true", "yes", "y", "on"}


def _env_list(key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    # Entries are ';'-separated, e.g. "Executive / C-Level;Director / VP".
    v = _env_str(key)
    if v is None:
        return default
    items = tuple(part.strip() for part in v.split(";") if part.strip())
    return items or default


@dataclass(frozen=True)
class InsightThresholds:
    # Department gaps
    gap_threshold: float = 15.0
    gap_limit: int = 5

    # Problem areas
    problem_area_limit: int = 3

    # Sub-threshold alerts (psychological safety)
    alert_section: str = "speaking_up"
    alert_threshold: float = 60.0

    # Leadership vs staff perception
    perception_threshold: float = 10.0
    leadership_roles: Tuple[str, ...] = ("Executive / C-Level",)
    staff_roles: Tuple[str, ...] = (
        "Individual Contributor / Staff",
        "Intern / Entry Level",
    )

    # Per-department manager vs staff overall gap
    manager_role: str = "Manager / Team Lead"
    staff_role: str = "Individual Contributor / Staff"

    @staticmethod
    def from_env() -> "InsightThresholds":
        d = InsightThresholds()
        return InsightThresholds(
            gap_threshold=_env_float("APP_GAP_THRESHOLD", d.gap_threshold),
            gap_limit=_env_int("APP_GAP_LIMIT", d.gap_limit),
            problem_area_limit=_env_int("APP_PROBLEM_AREA_LIMIT", d.problem_area_limit),
            alert_section=_env_str("APP_ALERT_SECTION", d.alert_section) or d.alert_section,
            alert_threshold=_env_float("APP_ALERT_THRESHOLD", d.alert_threshold),
            perception_threshold=_env_float("APP_PERCEPTION_THRESHOLD", d.perception_threshold),
            leadership_roles=_env_list("APP_LEADERSHIP_ROLES", d.leadership_roles),
            staff_roles=_env_list("APP_STAFF_ROLES", d.staff_roles),
            manager_role=_env_str("APP_MANAGER_ROLE", d.manager_role) or d.manager_role,
            staff_role=_env_str("APP_STAFF_ROLE", d.staff_role) or d.staff_role,
        )


@dataclass(frozen=True)
class Settings:
    # Core paths
    db_path: str

    # Logging
    log_level: str
    log_json: bool

    # Analytics
    thresholds: InsightThresholds = field(default_factory=InsightThresholds)

    @staticmethod
    def from_env() -> "Settings":
        # Read configuration from environment variables (and a local .env, if any).
        # Keep defaults safe and local-friendly.
        load_dotenv()

        db_path = _env_str("APP_DB_PATH", "data/commhealth.db") or "data/commhealth.db"

        # Create the parent directory if needed (do not create DB file here).
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        return Settings(
            db_path=db_path,
            log_level=_env_str("APP_LOG_LEVEL", "INFO") or "INFO",
            log_json=_env_bool("APP_LOG_JSON", True),
            thresholds=InsightThresholds.from_env(),
        )
