import pytest

from commhealth.analytics.aggregator import CanonicalResponse
from commhealth.analytics.insights import (
    department_gaps,
    interpret_response,
    perception_gaps,
    problem_areas,
    respondent_label,
    role_gaps,
    score_band,
    sub_threshold_alerts,
)
from commhealth.scoring.catalog import DEFAULT_CATALOG

EXEC = "Executive / C-Level"
STAFF = "Individual Contributor / Staff"
MANAGER = "Manager / Team Lead"


def _resp(role, **scores):
    return CanonicalResponse(response_id=f"{role}-{len(scores)}", role=role, section_scores=scores)


def test_problem_areas_lowest_first():
    avgs = {"work_changes": 70, "speaking_up": 40, "leadership": 55, "overload": 40}

    found = problem_areas(avgs, limit=3)

    assert [(f.section, f.score) for f in found] == [("speaking_up", 40), ("overload", 40), ("leadership", 55)]


def test_department_gap_reports_high_and_low_group():
    table = {"A": {"speaking_up": 40}, "B": {"speaking_up": 85}}

    gaps = department_gaps(table, ["speaking_up"], threshold=15)

    assert len(gaps) == 1
    g = gaps[0]
    assert (g.gap, g.high_group, g.low_group) == (45, "B", "A")
    assert (g.high_score, g.low_score) == (85, 40)


def test_department_gap_at_threshold_not_reported():
    table = {"A": {"speaking_up": 50}, "B": {"speaking_up": 65}}
    assert department_gaps(table, ["speaking_up"], threshold=15) == []


def test_department_gap_needs_two_departments_with_data():
    table = {"A": {"speaking_up": 20}, "B": {"leadership": 90}}
    assert department_gaps(table, ["speaking_up", "leadership"], threshold=15) == []


def test_department_gaps_sorted_and_limited():
    table = {
        "A": {"work_changes": 30, "speaking_up": 50, "leadership": 60},
        "B": {"work_changes": 90, "speaking_up": 90, "leadership": 80},
    }

    gaps = department_gaps(table, ["work_changes", "speaking_up", "leadership"], threshold=15, limit=2)

    assert [(g.section, g.gap) for g in gaps] == [("work_changes", 60), ("speaking_up", 40)]


def test_alerts_worst_first_and_skip_missing():
    table = {
        "A": {"speaking_up": 55},
        "B": {"speaking_up": 40},
        "C": {"speaking_up": 60},
        "D": {},
    }

    alerts = sub_threshold_alerts(table, "speaking_up", threshold=60)

    assert [(a.group, a.score) for a in alerts] == [("B", 40), ("A", 55)]


def test_perception_gap_positive_when_leadership_higher():
    responses = [_resp(EXEC, speaking_up=70), _resp(STAFF, speaking_up=50)]

    gaps = perception_gaps(responses, [EXEC], [STAFF], ["speaking_up"], threshold=10)

    assert len(gaps) == 1
    assert (gaps[0].group_a_mean, gaps[0].group_b_mean, gaps[0].gap) == (70, 50, 20)


def test_perception_gap_negative_and_ranked_by_magnitude():
    responses = [
        _resp(EXEC, speaking_up=40, leadership=90),
        _resp(STAFF, speaking_up=70, leadership=75),
        _resp("Intern / Entry Level", speaking_up=80, leadership=65),
    ]

    gaps = perception_gaps(
        responses, [EXEC], [STAFF, "Intern / Entry Level"], ["leadership", "speaking_up"], threshold=10
    )

    assert [(g.section, g.gap) for g in gaps] == [("speaking_up", -35), ("leadership", 20)]


def test_perception_gap_skips_section_missing_on_one_side():
    responses = [_resp(EXEC, culture=90), _resp(STAFF, speaking_up=30)]
    assert perception_gaps(responses, [EXEC], [STAFF], ["culture", "speaking_up"]) == []


def test_role_gaps_per_department():
    table = {
        "Sales": {MANAGER: 80, STAFF: 60},
        "Operations": {MANAGER: 70},
        "Legal": {MANAGER: 50, STAFF: 75},
    }

    gaps = role_gaps(table, MANAGER, STAFF)

    assert [(g.department, g.gap) for g in gaps] == [("Legal", -25), ("Sales", 20)]


@pytest.mark.parametrize(
    "pct, label",
    [(100, "Strong"), (87.5, "Strong"), (87, "Functional"), (70, "Functional"), (69, "Gaps"), (50, "Gaps"), (49, "Friction"), (None, "N/A")],
)
def test_score_band(pct, label):
    assert score_band(pct).label == label


@pytest.mark.parametrize("pct, label", [(75, "Healthy"), (74, "Developing"), (50, "Developing"), (49, "Needs Attention")])
def test_respondent_label(pct, label):
    assert respondent_label(pct) == label


def test_interpret_response():
    response = CanonicalResponse(
        response_id="r1",
        section_scores={"speaking_up": 40, "leadership": 90, "culture": 70, "overload": 55},
        overall_score=64,
        open_responses={"q4": "  More town halls ", "q5": ""},
    )

    result = interpret_response(response)

    assert result.band.label == "Gaps"
    assert "64%" in result.summary
    assert [n.section for n in result.strengths] == ["leadership", "culture"]
    assert [n.section for n in result.priorities] == ["speaking_up", "overload"]
    assert result.priorities[0].recommendation == DEFAULT_CATALOG.recommendation("speaking_up")
    assert result.priorities[0].area == "Speaking Up"
    assert result.open_feedback == ["More town halls"]


def test_interpret_response_without_scores():
    result = interpret_response(CanonicalResponse(response_id="r1"))
    assert result.band.label == "N/A"
    assert result.strengths == [] and result.priorities == []
