from datetime import datetime, timezone

import pytest

from commhealth.db.models import Question, ResponseRecord, Section


COMPLETED = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_record():
    counter = {"n": 0}

    def _make(
        section_scores=None,
        overall_score=None,
        department=None,
        role=None,
        company=None,
        completed_at=COMPLETED,
        response_id=None,
        open_responses=None,
    ):
        counter["n"] += 1
        return ResponseRecord(
            response_id=response_id or f"r{counter['n']}",
            assessment_id="a1",
            respondent_department=department,
            respondent_role=role,
            respondent_company=company,
            section_scores=section_scores or {},
            overall_score=overall_score,
            open_responses=open_responses or {},
            completed_at=completed_at,
        )

    return _make


@pytest.fixture
def two_sections():
    speaking = Section(
        key="speaking_up",
        name="Speaking Up",
        questions=(
            Question("q1", "speaking_up", "Speaking Up", "I can raise concerns.", weight=1.0, sort_order=1),
            Question("q2", "speaking_up", "Speaking Up", "Feedback leads to action.", weight=1.0, sort_order=2),
        ),
    )
    leadership = Section(
        key="leadership",
        name="Leadership Communication",
        questions=(
            Question("q3", "leadership", "Leadership Communication", "Leaders explain why.", weight=2.0, sort_order=3),
            Question("q4", "leadership", "Leadership Communication", "Anything else?", question_type="open", sort_order=4),
        ),
    )
    return [speaking, leadership]
