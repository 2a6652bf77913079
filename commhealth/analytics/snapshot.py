# commhealth/analytics/snapshot.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from commhealth.app.config import InsightThresholds
from commhealth.app.logging import get_logger
from commhealth.db.models import ResponseRecord
from commhealth.scoring.catalog import DEFAULT_CATALOG
from .aggregator import (
    CanonicalResponse,
    GroupStats,
    SkippedRecord,
    aggregate_by_category,
    aggregate_by_two_categories,
    bucket,
    by_department,
    by_role,
    canonicalize,
    group_breakdown,
    overall_average,
    section_averages,
)
from .insights import (
    GroupAlert,
    GroupGap,
    PerceptionGap,
    RoleGap,
    SectionFinding,
    department_gaps,
    perception_gaps,
    problem_areas,
    role_gaps,
    sub_threshold_alerts,
)


logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class AnalyticsFilters:
    company: Optional[str] = None
    department: Optional[str] = None
    date_from: Optional[datetime] = None
    # Exclusive upper bound.
    date_to: Optional[datetime] = None

    def matches(self, record: ResponseRecord) -> bool:
        # Same bucketing as the aggregate tables: "Unknown" selects rows with no value.
        if self.company and bucket(record.respondent_company) != bucket(self.company):
            return False
        if self.department and bucket(record.respondent_department) != bucket(self.department):
            return False
        if self.date_from or self.date_to:
            if record.completed_at is None:
                return False
            completed = _as_utc(record.completed_at)
            if self.date_from and completed < _as_utc(self.date_from):
                return False
            if self.date_to and completed >= _as_utc(self.date_to):
                return False
        return True


@dataclass(frozen=True)
class AnalyticsSnapshot:
    filters: AnalyticsFilters
    section_keys: List[str]

    # Counts
    total_records: int
    completed_responses: int
    skipped: List[SkippedRecord] = field(default_factory=list)

    # Scores
    overall_average: Optional[int] = None
    section_averages: Dict[str, int] = field(default_factory=dict)

    # Aggregate tables (heatmaps)
    department_section: Dict[str, Dict[str, int]] = field(default_factory=dict)
    role_section: Dict[str, Dict[str, int]] = field(default_factory=dict)
    department_role: Dict[str, Dict[str, int]] = field(default_factory=dict)

    # Breakdowns
    department_breakdown: Dict[str, GroupStats] = field(default_factory=dict)
    role_breakdown: Dict[str, GroupStats] = field(default_factory=dict)

    # Insights
    problem_areas: List[SectionFinding] = field(default_factory=list)
    department_gaps: List[GroupGap] = field(default_factory=list)
    alerts: List[GroupAlert] = field(default_factory=list)
    perception_gaps: List[PerceptionGap] = field(default_factory=list)
    role_gaps: List[RoleGap] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        # JSON-serializable (datetimes as ISO strings).
        data = asdict(self)
        for key in ("date_from", "date_to"):
            value = data["filters"][key]
            if isinstance(value, datetime):
                data["filters"][key] = value.isoformat()
        return data


def resolve_section_keys(responses: Iterable[CanonicalResponse], section_keys: Optional[Sequence[str]] = None) -> List[str]:
    # Catalog order first, then any other keys found in the data.
    if section_keys is not None:
        return list(section_keys)
    keys = DEFAULT_CATALOG.keys
    extra = sorted({k for r in responses for k in r.section_scores} - set(keys))
    return keys + extra


def compute_analytics(
    records: Sequence[ResponseRecord],
    filters: Optional[AnalyticsFilters] = None,
    thresholds: Optional[InsightThresholds] = None,
    section_keys: Optional[Sequence[str]] = None,
) -> AnalyticsSnapshot:
    """
    Build the full analytics snapshot for the current filter set.

    Recomputed from scratch on every call. Incomplete records never reach
    the aggregates; records with malformed scores are listed in `skipped`.
    """
    filters = filters or AnalyticsFilters()
    t = thresholds or InsightThresholds()

    selected = [r for r in records if filters.matches(r)]
    responses, skipped = canonicalize(selected)
    keys = resolve_section_keys(responses, section_keys)

    dept_section = aggregate_by_category(responses, by_department, keys)
    role_section = aggregate_by_category(responses, by_role, keys)
    dept_role = aggregate_by_two_categories(responses, by_department, by_role)
    sec_avgs = section_averages(responses, keys)

    snapshot = AnalyticsSnapshot(
        filters=filters,
        section_keys=keys,
        total_records=len(records),
        completed_responses=len(responses),
        skipped=skipped,
        overall_average=overall_average(responses),
        section_averages=sec_avgs,
        department_section=dept_section,
        role_section=role_section,
        department_role=dept_role,
        department_breakdown=group_breakdown(responses, by_department),
        role_breakdown=group_breakdown(responses, by_role),
        problem_areas=problem_areas(sec_avgs, limit=t.problem_area_limit),
        department_gaps=department_gaps(dept_section, keys, threshold=t.gap_threshold, limit=t.gap_limit),
        alerts=sub_threshold_alerts(dept_section, section_key=t.alert_section, threshold=t.alert_threshold),
        perception_gaps=perception_gaps(
            responses,
            t.leadership_roles,
            t.staff_roles,
            keys,
            threshold=t.perception_threshold,
        ),
        role_gaps=role_gaps(dept_role, t.manager_role, t.staff_role),
    )

    logger.info(
        "Analytics computed",
        extra={
            "records": len(records),
            "completed": len(responses),
            "skipped": len(skipped),
            "department_gaps": len(snapshot.department_gaps),
            "alerts": len(snapshot.alerts),
        },
    )
    return snapshot
