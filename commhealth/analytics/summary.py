"""
Plain-text data blocks for the external report generator.

The generator receives numeric summaries only, never raw responses. Scores
are printed on the percentage scale with the 1-4 reading alongside.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from commhealth.scoring.catalog import DEFAULT_CATALOG, SectionCatalog
from commhealth.scoring.normalizer import Number, to_likert_value
from .aggregator import UNKNOWN, CanonicalResponse, GroupStats, by_department, by_role
from .insights import PerceptionGap, RoleGap
from .snapshot import AnalyticsSnapshot


NOT_SPECIFIED = "Not specified"


@dataclass(frozen=True)
class IndividualSummary:
    overall_score: Optional[Number]
    section_scores: Dict[str, Number]
    department: str
    role: str
    open_feedback: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CompanySummary:
    company_name: Optional[str]
    total_responses: int
    overall_score: Optional[int]
    section_scores: Dict[str, int]
    department_breakdown: Dict[str, GroupStats] = field(default_factory=dict)
    role_breakdown: Dict[str, GroupStats] = field(default_factory=dict)
    perception_gaps: List[PerceptionGap] = field(default_factory=list)
    role_gaps: List[RoleGap] = field(default_factory=list)


def _fmt(value: Optional[Number]) -> str:
    if value is None:
        return "-"
    return f"{value:g}% ({to_likert_value(value):.2f}/4.0)"


def _signed(value: Number) -> str:
    return f"+{value:g}" if value > 0 else f"{value:g}"


def build_individual_summary(response: CanonicalResponse) -> IndividualSummary:
    department = by_department(response)
    role = by_role(response)
    return IndividualSummary(
        overall_score=response.overall_score,
        section_scores=dict(response.section_scores),
        department=NOT_SPECIFIED if department == UNKNOWN else department,
        role=NOT_SPECIFIED if role == UNKNOWN else role,
        open_feedback=[t.strip() for t in response.open_responses.values() if isinstance(t, str) and t.strip()],
    )


def build_company_summary(snapshot: AnalyticsSnapshot, company_name: Optional[str] = None) -> CompanySummary:
    return CompanySummary(
        company_name=company_name or snapshot.filters.company,
        total_responses=snapshot.completed_responses,
        overall_score=snapshot.overall_average,
        section_scores=dict(snapshot.section_averages),
        department_breakdown=dict(snapshot.department_breakdown),
        role_breakdown=dict(snapshot.role_breakdown),
        perception_gaps=list(snapshot.perception_gaps),
        role_gaps=list(snapshot.role_gaps),
    )


def render_individual_data(summary: IndividualSummary, catalog: SectionCatalog = DEFAULT_CATALOG) -> str:
    lines = [
        "DATA TO ANALYZE:",
        f"- Overall Score: {_fmt(summary.overall_score)}",
        f"- Department: {summary.department}",
        f"- Role: {summary.role}",
        "",
        "Section Scores:",
    ]
    lines += [f"- {catalog.name(k)}: {_fmt(v)}" for k, v in summary.section_scores.items()]

    if summary.open_feedback:
        lines += ["", "Open Feedback:"]
        lines += [f'- "{text}"' for text in summary.open_feedback]

    return "\n".join(lines)


def render_company_data(summary: CompanySummary, catalog: SectionCatalog = DEFAULT_CATALOG) -> str:
    lines = [
        "COMPANY DATA TO ANALYZE:",
        f"- Company: {summary.company_name or NOT_SPECIFIED}",
        f"- Total Responses: {summary.total_responses}",
        f"- Overall Average Score: {_fmt(summary.overall_score)}",
        "",
        "Section Averages:",
    ]
    lines += [f"- {catalog.name(k)}: {_fmt(v)}" for k, v in summary.section_scores.items()]

    if summary.department_breakdown:
        lines += ["", "Department Breakdown:"]
        lines += [
            f"- {dept}: {_fmt(s.average)} ({s.count} responses)"
            for dept, s in summary.department_breakdown.items()
        ]

    if summary.role_breakdown:
        lines += ["", "Role Breakdown:"]
        lines += [f"- {role}: {_fmt(s.average)} ({s.count} responses)" for role, s in summary.role_breakdown.items()]

    if summary.perception_gaps:
        lines += ["", "Perception Gaps (leadership vs staff):"]
        lines += [
            f"- {catalog.name(g.section)}: {g.group_a_mean}% vs {g.group_b_mean}% ({_signed(g.gap)} points)"
            for g in summary.perception_gaps
        ]

    if summary.role_gaps:
        lines += ["", "Manager vs Staff Gaps:"]
        lines += [
            f"- {g.department}: {g.upper_score}% vs {g.lower_score}% ({_signed(g.gap)} points)"
            for g in summary.role_gaps
        ]

    return "\n".join(lines)
