# commhealth/analytics/aggregator.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from commhealth.app.errors import InvalidScoreShape
from commhealth.app.logging import get_logger
from commhealth.db.models import ResponseRecord
from commhealth.scoring.normalizer import Number, normalize, normalize_overall, round_half_up


logger = get_logger(__name__)

UNKNOWN = "Unknown"


@dataclass(frozen=True)
class CanonicalResponse:
    # A completed response with every score already on the percentage scale.
    response_id: str
    department: Optional[str] = None
    role: Optional[str] = None
    company: Optional[str] = None
    company_size: Optional[str] = None
    completed_at: Optional[datetime] = None
    section_scores: Mapping[str, Number] = field(default_factory=dict)
    overall_score: Optional[Number] = None
    open_responses: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SkippedRecord:
    response_id: str
    reason: str


@dataclass(frozen=True)
class GroupStats:
    count: int
    average: Optional[int]


CategoryFn = Callable[[CanonicalResponse], str]


# -------------------------
# Ingestion
# -------------------------

def canonicalize_record(record: ResponseRecord) -> CanonicalResponse:
    # Raises InvalidScoreShape if any stored score (or the score container) has an unsupported shape.
    stored = record.section_scores if record.section_scores is not None else {}
    if not isinstance(stored, Mapping):
        raise InvalidScoreShape(stored, f"section_scores is not a mapping: {stored!r}")

    sections: Dict[str, Number] = {}
    for key, raw in stored.items():
        pct = normalize(raw)
        if pct is not None:
            sections[key] = pct

    return CanonicalResponse(
        response_id=record.response_id,
        department=record.respondent_department,
        role=record.respondent_role,
        company=record.respondent_company,
        company_size=record.company_size,
        completed_at=record.completed_at,
        section_scores=sections,
        overall_score=normalize_overall(record.overall_score),
        open_responses=dict(record.open_responses) if isinstance(record.open_responses, Mapping) else {},
    )


def canonicalize(records: Iterable[ResponseRecord]) -> Tuple[List[CanonicalResponse], List[SkippedRecord]]:
    """
    Resolve stored rows into canonical responses.

    Incomplete rows are dropped. A row with a malformed score is reported in
    the skipped list and excluded; the remaining rows are still returned.
    """
    canonical: List[CanonicalResponse] = []
    skipped: List[SkippedRecord] = []
    for record in records:
        if not record.is_completed:
            continue
        try:
            canonical.append(canonicalize_record(record))
        except InvalidScoreShape as e:
            logger.warning(
                "Excluding response with malformed score",
                extra={"response_id": record.response_id, "reason": str(e)},
            )
            skipped.append(SkippedRecord(response_id=record.response_id, reason=str(e)))
    return canonical, skipped


# -------------------------
# Category functions (total: missing -> "Unknown")
# -------------------------

def bucket(value: Optional[object]) -> str:
    # Group label for a raw category value; null or blank -> "Unknown".
    if value is None:
        return UNKNOWN
    return str(value).strip() or UNKNOWN


def category(attr: str) -> CategoryFn:
    def fn(response: CanonicalResponse) -> str:
        return bucket(getattr(response, attr, None))

    fn.__name__ = f"by_{attr}"
    return fn


by_department = category("department")
by_role = category("role")
by_company = category("company")


# -------------------------
# Aggregation
# -------------------------

def _mean_table(frame: pd.DataFrame, keys: List[str]) -> pd.Series:
    # Mean per key combination; only combinations with at least one value appear.
    return frame.groupby(keys, sort=True)["value"].mean()


def aggregate_by_category(
    responses: Sequence[CanonicalResponse],
    category_fn: CategoryFn,
    section_keys: Sequence[str],
) -> Dict[str, Dict[str, int]]:
    """
    Mean section percentage per (group, section).

    Every group present in the input gets an entry; a section without any
    defined score in that group is absent from the group's mapping.
    """
    wanted = set(section_keys)
    groups = sorted({category_fn(r) for r in responses})
    rows = [
        {"group": category_fn(r), "section": key, "value": float(value)}
        for r in responses
        for key, value in r.section_scores.items()
        if key in wanted and value is not None
    ]

    table: Dict[str, Dict[str, int]] = {g: {} for g in groups}
    if not rows:
        return table

    means = _mean_table(pd.DataFrame(rows), ["group", "section"])
    order = {k: i for i, k in enumerate(section_keys)}
    for (group, section), mean in sorted(means.items(), key=lambda kv: (kv[0][0], order[kv[0][1]])):
        table[group][section] = round_half_up(mean)
    return table


def aggregate_by_two_categories(
    responses: Sequence[CanonicalResponse],
    category_fn_a: CategoryFn,
    category_fn_b: CategoryFn,
) -> Dict[str, Dict[str, int]]:
    # Mean overall percentage per (A, B) pair.
    groups = sorted({category_fn_a(r) for r in responses})
    rows = [
        {"a": category_fn_a(r), "b": category_fn_b(r), "value": float(r.overall_score)}
        for r in responses
        if r.overall_score is not None
    ]

    table: Dict[str, Dict[str, int]] = {g: {} for g in groups}
    if not rows:
        return table

    for (a, b), mean in _mean_table(pd.DataFrame(rows), ["a", "b"]).items():
        table[a][b] = round_half_up(mean)
    return table


def section_averages(responses: Sequence[CanonicalResponse], section_keys: Sequence[str]) -> Dict[str, int]:
    # Cross-group average per section; sections nobody scored are absent.
    out: Dict[str, int] = {}
    for key in section_keys:
        values = [r.section_scores[key] for r in responses if r.section_scores.get(key) is not None]
        if values:
            out[key] = round_half_up(float(pd.Series(values, dtype="float64").mean()))
    return out


def overall_average(responses: Sequence[CanonicalResponse]) -> Optional[int]:
    values = [r.overall_score for r in responses if r.overall_score is not None]
    if not values:
        return None
    return round_half_up(float(pd.Series(values, dtype="float64").mean()))


def group_breakdown(responses: Sequence[CanonicalResponse], category_fn: CategoryFn) -> Dict[str, GroupStats]:
    # Response count and mean overall score per group.
    if not responses:
        return {}

    frame = pd.DataFrame(
        {
            "group": [category_fn(r) for r in responses],
            "value": [r.overall_score for r in responses],
        }
    )
    frame["value"] = pd.to_numeric(frame["value"], errors="coerce")
    stats = frame.groupby("group", sort=True)["value"].agg(["size", "mean"])

    out: Dict[str, GroupStats] = {}
    for group, row in stats.iterrows():
        mean = row["mean"]
        out[str(group)] = GroupStats(
            count=int(row["size"]),
            average=None if pd.isna(mean) else round_half_up(float(mean)),
        )
    return out
