# commhealth/scoring/scorer.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence

from commhealth.app.errors import InsufficientAnswers, InvalidAnswer
from commhealth.db.models import SCALE_MAX, SCALE_MIN, Question, Section, SectionScore
from .normalizer import round_half_up


@dataclass(frozen=True)
class ScoredResponse:
    section_scores: Dict[str, SectionScore] = field(default_factory=dict)
    # None when no section had an answered scale question.
    overall_score: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return self.overall_score is not None

    @property
    def total_score(self) -> float:
        return sum(s.score for s in self.section_scores.values())

    @property
    def max_score(self) -> float:
        return sum(s.max for s in self.section_scores.values())

    def to_storage(self) -> Dict[str, Any]:
        return {
            "section_scores": {k: s.to_dict() for k, s in self.section_scores.items()},
            "overall_score": self.overall_score,
        }


def _answer_value(question: Question, answers: Mapping[str, Any]) -> Optional[int]:
    value = answers.get(question.question_id)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not SCALE_MIN <= value <= SCALE_MAX:
        raise InvalidAnswer(f"{question.question_id}: expected an integer {SCALE_MIN}-{SCALE_MAX}, got {value!r}")
    return value


def score_section(section: Section, answers: Mapping[str, Any]) -> Optional[SectionScore]:
    total = 0.0
    max_total = 0.0
    for q in section.scale_questions:
        value = _answer_value(q, answers)
        if value is None:
            continue
        total += value * q.weight
        max_total += SCALE_MAX * q.weight

    # No answered scale question: the section has no score (not 0).
    if max_total == 0:
        return None
    return SectionScore(score=total, max=max_total, percentage=round_half_up(100 * total / max_total))


def score_response(answers: Mapping[str, Any], sections: Sequence[Section]) -> ScoredResponse:
    """
    Score one response against the survey's sections.

    The overall score is the summed section score over the summed section
    maximum, so heavier sections pull harder; it is not the mean of the
    section percentages.
    """
    section_scores: Dict[str, SectionScore] = {}
    for section in sections:
        s = score_section(section, answers)
        if s is not None:
            section_scores[section.key] = s

    total = sum(s.score for s in section_scores.values())
    max_total = sum(s.max for s in section_scores.values())
    overall = round_half_up(100 * total / max_total) if max_total > 0 else None

    return ScoredResponse(section_scores=section_scores, overall_score=overall)


def require_complete(scored: ScoredResponse) -> ScoredResponse:
    if not scored.is_complete:
        raise InsufficientAnswers("No section has an answered scale question; the response cannot be completed.")
    return scored
