from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence

from commhealth.app.errors import ResponseAlreadyCompleted
from commhealth.app.logging import assessment_context, get_logger
from commhealth.db.models import ResponseDraft, ResponseRecord, Section
from .scorer import require_complete, score_response


logger = get_logger(__name__)


class ResponseStore(Protocol):
    def insert_response(self, record: ResponseRecord) -> None: ...


def submit_response(
    draft: ResponseDraft,
    sections: Sequence[Section],
    store: ResponseStore,
    now: Optional[datetime] = None,
) -> ResponseRecord:
    """
    Score a draft, mark it completed and persist it.

    Raises:
        InsufficientAnswers: no section has an answered scale question. The
            draft stays incomplete and nothing is written.
        ResponseAlreadyCompleted / InvalidAnswer: propagated from the draft
            and the scorer.
    """
    if draft.is_completed:
        raise ResponseAlreadyCompleted(f"Response {draft.response_id} was already submitted.")

    scored = require_complete(score_response(draft.answers, sections))
    completed_at = now or datetime.now(timezone.utc)

    stored = scored.to_storage()
    r = draft.respondent
    record = ResponseRecord(
        response_id=draft.response_id,
        assessment_id=draft.assessment_id,
        respondent_name=r.name or None,
        respondent_email=r.email or None,
        respondent_company=r.company or None,
        respondent_department=r.department or None,
        respondent_role=r.role or None,
        company_size=r.company_size or None,
        section_scores=stored["section_scores"],
        overall_score=stored["overall_score"],
        answers=dict(draft.answers),
        open_responses=dict(draft.open_responses),
        created_at=draft.created_at,
        completed_at=completed_at,
    )

    with assessment_context(draft.assessment_id):
        store.insert_response(record)
        draft.completed_at = completed_at

        logger.info(
            "Response submitted",
            extra={
                "response_id": draft.response_id,
                "overall_score": scored.overall_score,
                "sections_scored": len(scored.section_scores),
            },
        )
    return record
