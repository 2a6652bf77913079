# commhealth/analytics/insights.py
"""
Findings derived from aggregate tables.

Every function here reads aggregator output (or canonical responses) and
never re-scores answers. Group/section combinations without data are
skipped; they are never treated as a score of 0.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from commhealth.scoring.catalog import DEFAULT_CATALOG, SectionCatalog
from commhealth.scoring.normalizer import Number, round_half_up, to_likert_value
from .aggregator import CanonicalResponse, by_role


@dataclass(frozen=True)
class SectionFinding:
    section: str
    score: int


@dataclass(frozen=True)
class GroupGap:
    section: str
    high_group: str
    low_group: str
    gap: int
    high_score: int
    low_score: int


@dataclass(frozen=True)
class GroupAlert:
    group: str
    score: int


@dataclass(frozen=True)
class PerceptionGap:
    section: str
    group_a_mean: int
    group_b_mean: int
    # Positive: group A scored higher.
    gap: int


@dataclass(frozen=True)
class RoleGap:
    department: str
    upper_role: str
    lower_role: str
    upper_score: int
    lower_score: int
    gap: int


@dataclass(frozen=True)
class ScoreBand:
    label: str
    description: str


# -------------------------
# Problem areas
# -------------------------

def problem_areas(section_avgs: Mapping[str, int], limit: int = 3) -> List[SectionFinding]:
    # Lowest sections first; ties keep catalog order (dicts preserve insertion order).
    order = {k: i for i, k in enumerate(section_avgs)}
    ranked = sorted(section_avgs.items(), key=lambda kv: (kv[1], order[kv[0]]))
    return [SectionFinding(section=k, score=v) for k, v in ranked[:limit]]


# -------------------------
# Department gaps
# -------------------------

def department_gaps(
    table: Mapping[str, Mapping[str, int]],
    section_keys: Sequence[str],
    threshold: float = 15,
    limit: int = 5,
) -> List[GroupGap]:
    """
    Largest spread between departments per section.

    A section needs at least two departments with data. Only spreads strictly
    above `threshold` are reported, largest first, capped at `limit`.
    """
    gaps: List[GroupGap] = []
    for key in section_keys:
        scored = [(group, cells[key]) for group, cells in table.items() if cells.get(key) is not None]
        if len(scored) < 2:
            continue

        scored.sort(key=lambda gs: (-gs[1], gs[0]))
        (high_group, high), (low_group, low) = scored[0], scored[-1]
        gap = high - low
        if gap > threshold:
            gaps.append(
                GroupGap(
                    section=key,
                    high_group=high_group,
                    low_group=low_group,
                    gap=gap,
                    high_score=high,
                    low_score=low,
                )
            )

    order = {k: i for i, k in enumerate(section_keys)}
    gaps.sort(key=lambda g: (-g.gap, order[g.section]))
    return gaps[:limit]


# -------------------------
# Sub-threshold alerts
# -------------------------

def sub_threshold_alerts(
    table: Mapping[str, Mapping[str, int]],
    section_key: str = "speaking_up",
    threshold: float = 60,
) -> List[GroupAlert]:
    # Groups whose cell for `section_key` is below `threshold`, worst first.
    alerts = [
        GroupAlert(group=group, score=cells[section_key])
        for group, cells in table.items()
        if cells.get(section_key) is not None and cells[section_key] < threshold
    ]
    alerts.sort(key=lambda a: (a.score, a.group))
    return alerts


# -------------------------
# Perception gaps (role set vs role set)
# -------------------------

def _role_set_means(
    responses: Sequence[CanonicalResponse],
    roles: Sequence[str],
    section_keys: Sequence[str],
) -> Dict[str, int]:
    wanted = set(roles)
    members = [r for r in responses if by_role(r) in wanted]
    means: Dict[str, int] = {}
    for key in section_keys:
        values = [r.section_scores[key] for r in members if r.section_scores.get(key) is not None]
        if values:
            means[key] = round_half_up(sum(values) / len(values))
    return means


def perception_gaps(
    responses: Sequence[CanonicalResponse],
    group_a_roles: Sequence[str],
    group_b_roles: Sequence[str],
    section_keys: Sequence[str],
    threshold: float = 10,
) -> List[PerceptionGap]:
    """
    Per-section mean of role set A minus role set B, from the raw responses.

    Sections where either set has no data are skipped. Reported when
    |gap| > threshold, largest absolute gap first.
    """
    a_means = _role_set_means(responses, group_a_roles, section_keys)
    b_means = _role_set_means(responses, group_b_roles, section_keys)

    gaps: List[PerceptionGap] = []
    for key in section_keys:
        if key not in a_means or key not in b_means:
            continue
        gap = a_means[key] - b_means[key]
        if abs(gap) > threshold:
            gaps.append(PerceptionGap(section=key, group_a_mean=a_means[key], group_b_mean=b_means[key], gap=gap))

    order = {k: i for i, k in enumerate(section_keys)}
    gaps.sort(key=lambda g: (-abs(g.gap), order[g.section]))
    return gaps


def role_gaps(
    dept_role_table: Mapping[str, Mapping[str, int]],
    upper_role: str,
    lower_role: str,
) -> List[RoleGap]:
    # Per department: overall score of one role minus another, where both have data.
    gaps: List[RoleGap] = []
    for dept, cells in dept_role_table.items():
        upper = cells.get(upper_role)
        lower = cells.get(lower_role)
        if upper is None or lower is None:
            continue
        gaps.append(
            RoleGap(
                department=dept,
                upper_role=upper_role,
                lower_role=lower_role,
                upper_score=upper,
                lower_score=lower,
                gap=upper - lower,
            )
        )
    gaps.sort(key=lambda g: (-abs(g.gap), g.department))
    return gaps


# -------------------------
# Score bands
# -------------------------

_NO_DATA = ScoreBand("N/A", "No data")


def score_band(percentage: Optional[Number]) -> ScoreBand:
    # Thresholds are 3.5 / 2.8 / 2.0 on the 1-4 scale.
    if percentage is None:
        return _NO_DATA
    if percentage >= 87.5:
        return ScoreBand("Strong", "Strong communication culture")
    if percentage >= 70:
        return ScoreBand("Functional", "Functional but inconsistent")
    if percentage >= 50:
        return ScoreBand("Gaps", "Communication gaps affecting performance")
    return ScoreBand("Friction", "High communication friction")


def respondent_label(percentage: Optional[Number]) -> str:
    # Wording shown to the respondent on their own results.
    if percentage is None:
        return _NO_DATA.label
    if percentage >= 75:
        return "Healthy"
    if percentage >= 50:
        return "Developing"
    return "Needs Attention"


# -------------------------
# Individual interpretation
# -------------------------

@dataclass(frozen=True)
class SectionNote:
    section: str
    area: str
    score: int
    insight: str
    recommendation: Optional[str] = None


@dataclass(frozen=True)
class ResponseInterpretation:
    band: ScoreBand
    summary: str
    strengths: List[SectionNote] = field(default_factory=list)
    priorities: List[SectionNote] = field(default_factory=list)
    open_feedback: List[str] = field(default_factory=list)


def interpret_response(
    response: CanonicalResponse,
    catalog: SectionCatalog = DEFAULT_CATALOG,
    top_n: int = 2,
) -> ResponseInterpretation:
    ranked = sorted(response.section_scores.items(), key=lambda kv: kv[1])
    band = score_band(response.overall_score)

    if response.overall_score is None:
        summary = "No scored sections are available for this response."
    else:
        summary = (
            f"This assessment reveals an overall communication health score of "
            f"{response.overall_score}% ({to_likert_value(response.overall_score):.2f} out of 4.0), "
            f"indicating {band.description.lower()}."
        )

    strengths = []
    for key, value in list(reversed(ranked))[:top_n]:
        info = catalog.get(key)
        quality = "excellent" if value >= 87.5 else "good"
        strengths.append(
            SectionNote(
                section=key,
                area=info.name,
                score=round_half_up(value),
                insight=f"{info.name} scored {value}% - {quality} in {info.description.lower() or info.name.lower()}.",
            )
        )

    priorities = []
    for key, value in ranked[:top_n]:
        info = catalog.get(key)
        priorities.append(
            SectionNote(
                section=key,
                area=info.name,
                score=round_half_up(value),
                insight=f"{info.name} scored {value}%, indicating opportunity for improvement.",
                recommendation=info.recommendation,
            )
        )

    feedback = [
        text.strip() for text in response.open_responses.values() if isinstance(text, str) and text.strip()
    ]

    return ResponseInterpretation(
        band=band,
        summary=summary,
        strengths=strengths,
        priorities=priorities,
        open_feedback=feedback,
    )
